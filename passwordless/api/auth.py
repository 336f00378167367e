"""Sign-in endpoints.

Endpoints:
- POST /auth/sendtoken: issue a token for the submitted contact and deliver it
- GET /auth/logout: sign out and revoke outstanding tokens
- GET /auth/me: return the authenticated uid (restricted)

Tokens are accepted on every route by the app-level accept_token
dependency, so the links sent out may point anywhere in the app.

The send-token endpoint is decorated once at import so its rate limit is
registered once; it reads the request-token stage from
``app.state.passwordless_request_token`` (set by create_app).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from passwordless.api.deps import PasswordlessDeps
from passwordless.core.config import settings
from passwordless.core.context import AuthContext
from passwordless.core.options import LogoutOptions, RestrictedOptions
from passwordless.core.rate_limiting import limiter
from passwordless.core.responses import DataResponse

REQUEST_TOKEN_STATE_ATTR = "passwordless_request_token"


@limiter.limit(settings.rate_limit_request_token)
async def send_token(request: Request) -> DataResponse[dict]:
    """Issue and deliver a one-time token.

    Unknown contacts get 401, malformed requests 400. With redirects
    configured, both outcomes become 302s instead. The rate limit
    is checked before any token is issued.
    """
    issue_token = getattr(request.app.state, REQUEST_TOKEN_STATE_ATTR)
    await issue_token(request)
    return DataResponse(data={"message": "Token sent"})


def build_auth_router(
    deps: PasswordlessDeps,
    *,
    restricted_options: RestrictedOptions | None = None,
    logout_options: LogoutOptions | None = None,
) -> APIRouter:
    """Create the /auth router bound to one PasswordlessDeps instance."""
    router = APIRouter()
    router.add_api_route("/sendtoken", send_token, methods=["POST"])

    @router.get("/logout")
    async def logout(
        context: Annotated[AuthContext, Depends(deps.logout(logout_options))],  # noqa: ARG001
    ) -> DataResponse[dict]:
        return DataResponse(data={"message": "Signed out"})

    @router.get("/me")
    async def me(
        uid: Annotated[str, Depends(deps.restricted(restricted_options))],
    ) -> DataResponse[dict]:
        """Return the uid attached to this request."""
        return DataResponse(data={"uid": uid})

    return router
