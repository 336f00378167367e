"""FastAPI application entry point.

Wires the passwordless dependencies into an application:
- SessionMiddleware (signed cookie) so identities survive across requests
- App-wide session_support and accept_token dependencies, so a sign-in
  link may point at any route
- Exception handlers turning redirects and API errors into responses
- The /auth router and a health check endpoint
"""

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.sessions import SessionMiddleware

from passwordless.api.auth import REQUEST_TOKEN_STATE_ATTR, build_auth_router
from passwordless.api.deps import PasswordlessDeps
from passwordless.core.config import Settings, settings
from passwordless.core.console_delivery import ConsoleDelivery
from passwordless.core.context import AuthContext
from passwordless.core.email import ResendEmailDelivery
from passwordless.core.errors import APIError, AuthRedirect
from passwordless.core.options import (
    AcceptTokenOptions,
    LogoutOptions,
    RequestTokenOptions,
    RestrictedOptions,
)
from passwordless.core.rate_limiting import limiter, rate_limit_exceeded_handler
from passwordless.core.responses import ErrorDetail, ErrorResponse
from passwordless.services.passwordless import Passwordless
from passwordless.services.token_store import InMemoryTokenStore

logger = structlog.get_logger()


def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Return the error envelope, including headers such as WWW-Authenticate.

    Collaborator failures (5xx) are logged with their cause.
    """
    if exc.status_code >= 500:
        logger.error(
            "Passwordless collaborator failed",
            code=exc.code,
            path=str(request.url.path),
            exc_info=exc,
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=exc.code,
                message=exc.message,
                details=exc.details,
            )
        ).model_dump(),
        headers=exc.headers,
    )


def auth_redirect_handler(_request: Request, exc: AuthRedirect) -> RedirectResponse:
    return RedirectResponse(exc.location, status_code=302)


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors from FastAPI.

    Converts FastAPI's validation errors to the standard envelope.
    """
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=ErrorDetail(
                code="VALIDATION_ERROR",
                message="Request validation failed",
                details=[
                    {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
                    for e in exc.errors()
                ],
            )
        ).model_dump(),
    )


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions.

    Returns 500 INTERNAL_ERROR without exposing stack traces; the exception
    is logged instead.
    """
    logger.exception("Unhandled exception", exc_info=exc, path=str(request.url.path))

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred",
            )
        ).model_dump(),
    )


async def resolve_contact_as_uid(
    contact: str,
    selector: str | None,  # noqa: ARG001
    context: AuthContext,  # noqa: ARG001
) -> str | None:
    """Treat the normalized contact address itself as the uid."""
    normalized = contact.strip().lower()
    return normalized or None


def build_default_passwordless(app_settings: Settings) -> Passwordless:
    """In-memory store plus one default delivery method.

    Emails through Resend when an API key is configured; otherwise the
    sign-in link is only logged (development).
    """
    core = Passwordless.from_settings(InMemoryTokenStore(), app_settings)
    if app_settings.resend_api_key.get_secret_value():
        send_token = ResendEmailDelivery.from_settings(app_settings)
    else:
        logger.warning("No Resend API key configured, sign-in links are only logged")
        send_token = ConsoleDelivery(accept_url=f"{app_settings.base_url.rstrip('/')}/")
    core.add_delivery(send_token, resolve_user=resolve_contact_as_uid)
    return core


def create_app(
    core: Passwordless | None = None,
    *,
    app_settings: Settings | None = None,
    sessions: bool = True,
    parse_body: bool = True,
    accept_token_options: AcceptTokenOptions | None = None,
    request_token_options: RequestTokenOptions | None = None,
    restricted_options: RestrictedOptions | None = None,
    logout_options: LogoutOptions | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        core: Configured Passwordless instance. Built from settings when
            omitted.
        app_settings: Settings override (defaults to the module settings).
        sessions: Install SessionMiddleware and the session_support stage.
            Without sessions an identity only lasts for the request that
            carried the token.
        parse_body: Parse JSON/form bodies for the procedures.
        accept_token_options: Options for the app-wide accept_token stage.
        request_token_options: Options for POST /auth/sendtoken.
        restricted_options: Options for GET /auth/me.
        logout_options: Options for GET /auth/logout.

    Returns:
        Configured FastAPI application instance.
    """
    app_settings = app_settings or settings
    core = core or build_default_passwordless(app_settings)
    deps = PasswordlessDeps(core, parse_body=parse_body, flash=sessions)

    stages = [Depends(deps.accept_token(accept_token_options))]
    if sessions:
        stages.insert(0, Depends(deps.session_support()))

    app = FastAPI(
        title="Passwordless",
        version="1.0.0",
        description="Token-based sign-in without passwords",
        dependencies=stages,
    )

    if sessions:
        app.add_middleware(
            SessionMiddleware,
            secret_key=app_settings.session_secret.get_secret_value(),
            session_cookie=app_settings.session_cookie_name,
            max_age=app_settings.session_max_age,
            same_site=app_settings.session_same_site,
            https_only=app_settings.session_https_only,
        )

    # Order matters: specific handlers first, then catch-all
    app.add_exception_handler(AuthRedirect, auth_redirect_handler)
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.state.limiter = limiter
    app.state.passwordless = core
    app.state.passwordless_deps = deps
    setattr(app.state, REQUEST_TOKEN_STATE_ATTR, deps.request_token(request_token_options))

    app.include_router(
        build_auth_router(
            deps,
            restricted_options=restricted_options,
            logout_options=logout_options,
        ),
        prefix="/auth",
        tags=["auth"],
    )

    @app.get("/health")
    def health_check() -> dict:
        return {"status": "healthy"}

    return app


# Used by uvicorn: uvicorn passwordless.main:app
app = create_app()
