"""Email token delivery via the Resend API.

A simple HTTP POST per token, plain-text body containing a sign-in link of
the form ``{accept_url}?token=...&uid=...``. Failures propagate to the
request-token procedure, which reports them as a DeliveryError.
"""

import logging
from typing import Any
from urllib.parse import quote, urlencode, urlsplit

import httpx
from pydantic import SecretStr

from passwordless.core.config import Settings

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0


def build_token_url(
    accept_url: str,
    token: str,
    uid: str,
    *,
    token_field: str = "token",
    uid_field: str = "uid",
) -> str:
    """Build the link that hands a token back to the accept-token stage.

    Args:
        accept_url: Any URL on which the accept-token stage runs.
        token: Plain token.
        uid: uid the token was issued to.
        token_field: Query parameter for the token.
        uid_field: Query parameter for the uid.

    Returns:
        ``accept_url`` with the token and uid appended as query parameters.
    """
    params = urlencode({token_field: token, uid_field: uid}, quote_via=quote)
    separator = "&" if urlsplit(accept_url).query else "?"
    return f"{accept_url}{separator}{params}"


class ResendEmailDelivery:
    """``send_token`` callable that emails a sign-in link through Resend.

    Args:
        api_key: Resend API key.
        email_from: Sender address.
        accept_url: URL the link points to (accept-token must run there).
        subject: Email subject.
        ttl_minutes: Lifetime mentioned in the email body.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        *,
        api_key: SecretStr,
        email_from: str,
        accept_url: str,
        subject: str = "Your sign-in link",
        ttl_minutes: int = 60,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._email_from = email_from
        self._accept_url = accept_url
        self._subject = subject
        self._ttl_minutes = ttl_minutes
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        accept_path: str = "/",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ResendEmailDelivery":
        return cls(
            api_key=settings.resend_api_key,
            email_from=settings.email_from,
            accept_url=f"{settings.base_url.rstrip('/')}{accept_path}",
            subject=settings.email_subject,
            ttl_minutes=max(1, settings.token_ttl_ms // 60_000),
            transport=transport,
        )

    async def __call__(
        self,
        token: str,
        uid: str,
        recipient: str,
        context: Any = None,  # noqa: ARG002
    ) -> None:
        """Send the sign-in email.

        Raises:
            httpx.HTTPError: If Resend is unreachable or rejects the request.
        """
        link = build_token_url(self._accept_url, token, uid)
        async with httpx.AsyncClient(transport=self._transport) as client:
            resp = await client.post(
                _RESEND_API_URL,
                headers={
                    "Authorization": f"Bearer {self._api_key.get_secret_value()}",
                },
                json={
                    "from": self._email_from,
                    "to": recipient,
                    "subject": self._subject,
                    "text": (
                        f"Click this link to sign in:\n\n{link}\n\n"
                        f"This link expires in {self._ttl_minutes} minutes. "
                        "If you didn't request this, you can safely ignore this email."
                    ),
                },
                timeout=_RESEND_TIMEOUT,
            )
            resp.raise_for_status()
        logger.info("Sent sign-in email for uid=%s", uid)
