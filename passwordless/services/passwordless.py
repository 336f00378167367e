"""Passwordless facade.

Holds the token store, the delivery registry and the global options, and
exposes every procedure as an async method taking and returning explicit
request contexts/outcomes:

    core = Passwordless(InMemoryTokenStore())
    core.add_delivery(send_email, resolve_user=find_user_by_email)

    outcome = await core.request_token(context)
    outcome = await core.accept_token(context)
    outcome = await core.restricted(context)
"""

from passwordless.core.config import Settings
from passwordless.core.context import AuthContext
from passwordless.core.errors import ConfigurationError
from passwordless.core.options import (
    DEFAULT_TTL_MS,
    AcceptTokenOptions,
    DeliveryOptions,
    LogoutOptions,
    RequestTokenOptions,
    RestrictedOptions,
)
from passwordless.core.outcomes import Outcome, Proceed
from passwordless.services import accept_token as accept_token_procedure
from passwordless.services import logout as logout_procedure
from passwordless.services import request_token as request_token_procedure
from passwordless.services import restriction, session_bridge
from passwordless.services.delivery_registry import (
    DeliveryMethod,
    DeliveryRegistry,
    ResolveUser,
    SendToken,
)
from passwordless.services.token_store import TokenStore


class Passwordless:
    """Token-based authentication without passwords.

    Args:
        token_store: Persistence for issued tokens.
        user_property: Attribute name under which the uid is exposed on
            the request.
        allow_token_reuse: Keep tokens valid after a successful
            authentication (needed for stateless operation, otherwise not
            recommended).
        skip_force_session_save: Do not await a session save before
            redirecting (for sessions written together with the response).

    Raises:
        ConfigurationError: If no token store is given.
    """

    def __init__(
        self,
        token_store: TokenStore,
        *,
        user_property: str = "user",
        allow_token_reuse: bool = False,
        skip_force_session_save: bool = False,
    ) -> None:
        if token_store is None:
            msg = "token_store has to be provided"
            raise ConfigurationError(msg)
        if not user_property:
            msg = "user_property must be a non-empty string"
            raise ConfigurationError(msg)

        self.token_store = token_store
        self.user_property = user_property
        self.allow_token_reuse = allow_token_reuse
        self.skip_force_session_save = skip_force_session_save
        self.delivery = DeliveryRegistry()
        self.default_ttl_ms: int | float = DEFAULT_TTL_MS

    @classmethod
    def from_settings(cls, token_store: TokenStore, settings: Settings) -> "Passwordless":
        """Build an instance whose global options come from ``settings``."""
        core = cls(
            token_store,
            user_property=settings.user_property,
            allow_token_reuse=settings.allow_token_reuse,
            skip_force_session_save=settings.skip_force_session_save,
        )
        core.default_ttl_ms = settings.token_ttl_ms
        return core

    def add_delivery(
        self,
        send_token: SendToken,
        *,
        resolve_user: ResolveUser,
        name: str | None = None,
        options: DeliveryOptions | None = None,
    ) -> DeliveryMethod:
        """Register a delivery method.

        Without ``name`` the method becomes the single default method;
        with ``name`` it joins the named methods. Mixing the two, adding a
        second default, or reusing a name raises ConfigurationError.
        """
        options = (options or DeliveryOptions()).with_ttl_default(self.default_ttl_ms)
        if name is None:
            return self.delivery.register_default(resolve_user, send_token, options)
        return self.delivery.register_named(name, resolve_user, send_token, options)

    def new_context(self, **fields: object) -> AuthContext:
        """Create a request context bound to this instance's user_property."""
        return AuthContext(user_property=self.user_property, **fields)  # type: ignore[arg-type]

    async def request_token(
        self,
        context: AuthContext,
        options: RequestTokenOptions | None = None,
    ) -> Outcome:
        return await request_token_procedure.request_token(self, context, options)

    async def accept_token(
        self,
        context: AuthContext,
        options: AcceptTokenOptions | None = None,
    ) -> Outcome:
        return await accept_token_procedure.accept_token(self, context, options)

    async def restricted(
        self,
        context: AuthContext,
        options: RestrictedOptions | None = None,
    ) -> Outcome:
        return await restriction.restricted(self, context, options)

    async def logout(
        self,
        context: AuthContext,
        options: LogoutOptions | None = None,
    ) -> Proceed:
        return await logout_procedure.logout(self, context, options)

    def session_support(self, context: AuthContext) -> Proceed:
        """Restore the identity stored in the session onto ``context``."""
        return session_bridge.restore_session(context)
