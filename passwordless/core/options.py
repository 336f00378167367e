"""Option objects for the passwordless procedures.

Each options class validates itself on construction and raises
ConfigurationError for combinations that can never work, so a wiring
mistake fails at setup time rather than on the first request.
"""

from dataclasses import dataclass, replace

from passwordless.core.errors import ConfigurationError
from passwordless.core.tokens import MAX_NUMBER_TOKEN, TokenAlgorithm

DEFAULT_TTL_MS = 60 * 60 * 1000


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


@dataclass(frozen=True)
class DeliveryOptions:
    """Per-delivery-method token settings.

    Attributes:
        ttl_ms: Token lifetime in milliseconds. None inherits the
            configured default when the method is registered.
        token_algorithm: Zero-argument callable returning a token string.
        number_token_max: Use numeric tokens in [0, number_token_max)
            instead of the default generator.
    """

    ttl_ms: int | float | None = None
    token_algorithm: TokenAlgorithm | None = None
    number_token_max: int | None = None

    def __post_init__(self) -> None:
        if self.ttl_ms is not None and (not _is_number(self.ttl_ms) or self.ttl_ms <= 0):
            msg = f"ttl_ms must be a positive number, got {self.ttl_ms!r}"
            raise ConfigurationError(msg)
        if self.token_algorithm is not None and not callable(self.token_algorithm):
            msg = "token_algorithm must be callable"
            raise ConfigurationError(msg)
        if self.number_token_max is not None:
            if not _is_number(self.number_token_max) or not (
                1 <= self.number_token_max <= MAX_NUMBER_TOKEN
            ):
                msg = (
                    "number_token_max must be a number between 1 and 2^32, "
                    f"got {self.number_token_max!r}"
                )
                raise ConfigurationError(msg)
            if self.token_algorithm is not None:
                msg = "token_algorithm cannot be used together with number_token_max"
                raise ConfigurationError(msg)

    def with_ttl_default(self, ttl_ms: int | float) -> "DeliveryOptions":
        """Return these options with ``ttl_ms`` filled in if it was left unset."""
        if self.ttl_ms is not None:
            return self
        return replace(self, ttl_ms=ttl_ms)


@dataclass(frozen=True)
class AcceptTokenOptions:
    """Options for the accept-token procedure.

    Attributes:
        token_field: Query/body field carrying the token.
        uid_field: Query/body field carrying the uid.
        allow_post: Also read token and uid from the parsed body.
        success_redirect: Redirect target after a successful authentication.
        enable_origin_redirect: Prefer the origin URL stored with the token.
        success_flash: Message flashed on success.
        failure_flash: Message flashed when a presented token is invalid.
    """

    token_field: str = "token"
    uid_field: str = "uid"
    allow_post: bool = False
    success_redirect: str | None = None
    enable_origin_redirect: bool = False
    success_flash: str | None = None
    failure_flash: str | None = None

    @property
    def uses_flash(self) -> bool:
        return bool(self.success_flash or self.failure_flash)


@dataclass(frozen=True)
class RequestTokenOptions:
    """Options for the request-token procedure.

    Attributes:
        user_field: Field carrying the contact (e.g., email address).
        delivery_field: Field selecting a named delivery method.
        origin_field: Field carrying the originally requested URL. Only
            read when set.
        allow_get: Read fields from query parameters on GET requests.
        success_redirect: Redirect target after the token was sent.
        failure_redirect: Redirect target for any rejected request.
        unknown_user_redirect: Redirect target for missing, empty or
            unknown contacts. Takes precedence over failure_redirect.
        success_flash: Message flashed after the token was sent.
        failure_flash: Message flashed before a failure redirect.
    """

    user_field: str = "user"
    delivery_field: str = "delivery"
    origin_field: str | None = None
    allow_get: bool = False
    success_redirect: str | None = None
    failure_redirect: str | None = None
    unknown_user_redirect: str | None = None
    success_flash: str | None = None
    failure_flash: str | None = None

    def __post_init__(self) -> None:
        if self.failure_flash and not (
            self.failure_redirect or self.unknown_user_redirect
        ):
            msg = "failure_flash cannot be used without failure_redirect"
            raise ConfigurationError(msg)

    @property
    def uses_flash(self) -> bool:
        return bool(self.success_flash or self.failure_flash)


@dataclass(frozen=True)
class RestrictedOptions:
    """Options for the restriction gate.

    Attributes:
        failure_redirect: Redirect target for unauthenticated requests.
        failure_flash: Message flashed before redirecting.
        origin_field: Query parameter that receives the requested URL.
    """

    failure_redirect: str | None = None
    failure_flash: str | None = None
    origin_field: str | None = None

    def __post_init__(self) -> None:
        if self.failure_flash and not self.failure_redirect:
            msg = "failure_flash cannot be used without failure_redirect"
            raise ConfigurationError(msg)
        if self.origin_field and not self.failure_redirect:
            msg = "origin_field cannot be used without failure_redirect"
            raise ConfigurationError(msg)


@dataclass(frozen=True)
class LogoutOptions:
    success_flash: str | None = None
