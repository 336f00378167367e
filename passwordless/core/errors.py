"""Error classes for the passwordless core and its HTTP binding.

Three families live here:
- ConfigurationError: the system was wired incorrectly (missing store,
  missing delivery method, missing upstream capability, invalid option
  combination). Fatal, raised immediately, never retried.
- APIError and subclasses: outcomes that map onto HTTP status codes. User
  input errors are 4xx; collaborator failures (store, delivery, user
  resolution, token generation, session) are 5xx.
- AuthRedirect: carries a redirect location out of a FastAPI dependency.

An invalid, expired or reused token is NOT an error. The accept procedure
simply proceeds without attaching an identity.
"""


class ConfigurationError(Exception):
    """The passwordless system was wired incorrectly.

    Indicates programmer error, not a runtime condition. Raised at setup
    time when possible and otherwise on first use.
    """


class APIError(Exception):
    """Base class for API errors.

    Attributes:
        code: Machine-readable error code (e.g., "UNAUTHORIZED").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
        headers: Optional response headers (e.g., WWW-Authenticate).
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        self.headers = headers
        super().__init__(message)


class ValidationError(APIError):
    """Malformed token request (400).

    Use when the contact field is missing or no delivery method matches
    the submitted selector.
    """

    def __init__(
        self,
        message: str = "Bad request",
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication required (401).

    Args:
        message: Human-readable error message.
        challenge: Value for the WWW-Authenticate header, if any.
    """

    def __init__(
        self,
        message: str = "Unauthorized",
        challenge: str | None = None,
    ) -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
            headers={"WWW-Authenticate": challenge} if challenge else None,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )


class CollaboratorError(APIError):
    """An external collaborator failed (500).

    Always raised ``from`` the collaborator's own exception so the cause
    survives for logging. The core never retries.
    """

    code = "COLLABORATOR_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(
            code=type(self).code,
            message=message,
            status_code=500,
        )


class TokenStoreError(CollaboratorError):
    """The token store failed to authenticate, store or invalidate."""

    code = "TOKEN_STORE_ERROR"


class DeliveryError(CollaboratorError):
    """A delivery method failed to transmit a token."""

    code = "DELIVERY_ERROR"


class UserResolutionError(CollaboratorError):
    """A delivery method's user resolver failed (not the same as unknown user)."""

    code = "USER_RESOLUTION_ERROR"


class TokenGenerationError(CollaboratorError):
    """The token generator could not produce a token."""

    code = "TOKEN_GENERATION_ERROR"


class SessionError(CollaboratorError):
    """The session could not be persisted before a redirect."""

    code = "SESSION_ERROR"


class AuthRedirect(Exception):
    """Redirect the client to ``location``.

    Raised by the FastAPI dependencies once any session write has completed.
    The application's exception handler turns it into a 302 response.
    """

    def __init__(self, location: str) -> None:
        self.location = location
        super().__init__(location)
