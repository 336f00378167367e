"""FastAPI dependencies over the passwordless procedures.

Each procedure becomes a dependency factory, mirroring how the procedures
are stacked in a request pipeline:

    deps = PasswordlessDeps(core)
    app = FastAPI(dependencies=[
        Depends(deps.session_support()),
        Depends(deps.accept_token()),
    ])

    @app.get("/admin")
    async def admin(uid: Annotated[str, Depends(deps.restricted())]): ...

The AuthContext is built once per request and kept on ``request.state``;
every stage reads the latest context and stores the one it returns. The
identity is also exposed as ``request.state.<user_property>``.

Outcomes become responses through exceptions: Redirect raises AuthRedirect
(302), Reject raises ValidationError (400) or UnauthorizedError (401).
"""

import json
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request

from passwordless.core.context import AuthContext, MappingSession, SessionFlash
from passwordless.core.errors import AuthRedirect, UnauthorizedError, ValidationError
from passwordless.core.options import (
    AcceptTokenOptions,
    LogoutOptions,
    RequestTokenOptions,
    RestrictedOptions,
)
from passwordless.core.outcomes import Outcome, Proceed, Redirect
from passwordless.services.passwordless import Passwordless

_CONTEXT_STATE_ATTR = "passwordless_context"
_BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

ContextDependency = Callable[[Request], Awaitable[AuthContext]]


async def _read_body(request: Request) -> dict[str, Any]:
    """Parse a JSON or form body into a flat dict (empty when absent)."""
    if request.method not in _BODY_METHODS:
        return {}

    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return {}
        return payload if isinstance(payload, dict) else {}
    if content_type.startswith(_FORM_CONTENT_TYPES):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}
    return {}


class PasswordlessDeps:
    """Builds FastAPI dependencies bound to one Passwordless instance.

    Args:
        core: Configured Passwordless instance.
        parse_body: Parse JSON/form bodies into the context. When False
            the context carries no body, as if no body parser ran.
        flash: Offer session-backed flash messages (requires sessions).
    """

    def __init__(
        self,
        core: Passwordless,
        *,
        parse_body: bool = True,
        flash: bool = True,
    ) -> None:
        self.core = core
        self._parse_body = parse_body
        self._flash = flash

    async def get_context(self, request: Request) -> AuthContext:
        """Return this request's AuthContext, building it on first use."""
        context = getattr(request.state, _CONTEXT_STATE_ATTR, None)
        if context is None:
            context = await self._build_context(request)
            self._attach(request, context)
        return context

    async def _build_context(self, request: Request) -> AuthContext:
        # request.session asserts when SessionMiddleware is missing
        session_data = request.session if "session" in request.scope else None
        url = request.url.path
        if request.url.query:
            url = f"{url}?{request.url.query}"

        return self.core.new_context(
            method=request.method,
            url=url,
            query=dict(request.query_params),
            body=await _read_body(request) if self._parse_body else None,
            session=MappingSession(session_data) if session_data is not None else None,
            flash=(
                SessionFlash(session_data)
                if self._flash and session_data is not None
                else None
            ),
        )

    def _attach(self, request: Request, context: AuthContext) -> None:
        setattr(request.state, _CONTEXT_STATE_ATTR, context)
        setattr(request.state, self.core.user_property, context.identity)

    def _settle(self, request: Request, outcome: Outcome) -> AuthContext:
        if isinstance(outcome, Proceed):
            self._attach(request, outcome.context)
            return outcome.context
        if isinstance(outcome, Redirect):
            raise AuthRedirect(outcome.location)
        if outcome.status_code == 401:
            raise UnauthorizedError(challenge=outcome.challenge)
        raise ValidationError()

    def session_support(self) -> ContextDependency:
        """Restore the session identity (requires SessionMiddleware)."""

        async def dependency(request: Request) -> AuthContext:
            context = await self.get_context(request)
            return self._settle(request, self.core.session_support(context))

        return dependency

    def accept_token(self, options: AcceptTokenOptions | None = None) -> ContextDependency:
        """Authenticate from token/uid parameters when present."""

        async def dependency(request: Request) -> AuthContext:
            context = await self.get_context(request)
            return self._settle(request, await self.core.accept_token(context, options))

        return dependency

    def request_token(self, options: RequestTokenOptions | None = None) -> ContextDependency:
        """Issue and deliver a token for the submitted contact."""

        async def dependency(request: Request) -> AuthContext:
            context = await self.get_context(request)
            return self._settle(request, await self.core.request_token(context, options))

        return dependency

    def logout(self, options: LogoutOptions | None = None) -> ContextDependency:
        """Clear the identity and invalidate outstanding tokens."""

        async def dependency(request: Request) -> AuthContext:
            context = await self.get_context(request)
            return self._settle(request, await self.core.logout(context, options))

        return dependency

    def restricted(
        self, options: RestrictedOptions | None = None
    ) -> Callable[[Request], Awaitable[str]]:
        """Require an attached identity; resolves to the authenticated uid."""

        async def dependency(request: Request) -> str:
            context = await self.get_context(request)
            context = self._settle(request, await self.core.restricted(context, options))
            return str(context.identity)

        return dependency
