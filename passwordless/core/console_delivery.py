"""Log-only token delivery for local development.

Writes the sign-in link to the log instead of sending it anywhere. Never
enable in production: the log then contains working credentials.
"""

import logging
from typing import Any

from passwordless.core.email import build_token_url

logger = logging.getLogger(__name__)


class ConsoleDelivery:
    """``send_token`` callable that logs the sign-in link at INFO."""

    def __init__(self, accept_url: str = "http://localhost:8000/") -> None:
        self._accept_url = accept_url

    async def __call__(
        self,
        token: str,
        uid: str,
        recipient: str,
        context: Any = None,  # noqa: ARG002
    ) -> None:
        link = build_token_url(self._accept_url, token, uid)
        logger.info("Sign-in link for %s: %s", recipient, link)
