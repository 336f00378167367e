"""Token-based passwordless authentication.

The commonly used names are exported here for convenient imports:
    from passwordless import Passwordless, InMemoryTokenStore, AuthContext

Layout:
- core/: tokens, options, request context, outcomes, errors, config, delivery adapters
- services/: the Passwordless facade, procedures, token stores, delivery registry
- models/, repositories/: SQLAlchemy persistence for SqlAlchemyTokenStore
- api/: FastAPI dependencies and the /auth router
- main.py: application factory
"""

from passwordless.core.context import AuthContext, MappingSession, SessionFlash
from passwordless.core.errors import (
    AuthRedirect,
    ConfigurationError,
    DeliveryError,
    SessionError,
    TokenGenerationError,
    TokenStoreError,
    UserResolutionError,
)
from passwordless.core.options import (
    AcceptTokenOptions,
    DeliveryOptions,
    LogoutOptions,
    RequestTokenOptions,
    RestrictedOptions,
)
from passwordless.core.outcomes import Outcome, Proceed, Redirect, Reject
from passwordless.core.tokens import generate_number_token, generate_token
from passwordless.services.passwordless import Passwordless
from passwordless.services.sql_token_store import SqlAlchemyTokenStore
from passwordless.services.token_store import (
    ConsumingTokenStore,
    InMemoryTokenStore,
    TokenStore,
)

__all__ = [
    "AcceptTokenOptions",
    "AuthContext",
    "AuthRedirect",
    "ConfigurationError",
    "ConsumingTokenStore",
    "DeliveryError",
    "DeliveryOptions",
    "InMemoryTokenStore",
    "LogoutOptions",
    "MappingSession",
    "Outcome",
    "Passwordless",
    "Proceed",
    "Redirect",
    "Reject",
    "RequestTokenOptions",
    "RestrictedOptions",
    "SessionError",
    "SessionFlash",
    "SqlAlchemyTokenStore",
    "TokenGenerationError",
    "TokenStore",
    "TokenStoreError",
    "UserResolutionError",
    "generate_number_token",
    "generate_token",
]
