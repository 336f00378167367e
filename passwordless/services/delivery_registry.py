"""Delivery method registry.

A registry holds either exactly one unnamed (default) delivery method or one
or more named methods, never both. The two states are separate types so the
mutual exclusion is enforced by construction in one place.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from passwordless.core.errors import ConfigurationError
from passwordless.core.options import DEFAULT_TTL_MS, DeliveryOptions
from passwordless.core.tokens import generate_number_token, generate_token

logger = logging.getLogger(__name__)

# resolve_user(contact, delivery_selector, context) -> uid or None
ResolveUser = Callable[[str, str | None, Any], Awaitable[str | None]]

# send_token(token, uid, recipient, context) -> None
SendToken = Callable[[str, str, str, Any], Awaitable[None]]


@dataclass(frozen=True)
class DeliveryMethod:
    """A contact resolver paired with a token transmitter.

    Attributes:
        resolve_user: Maps a submitted contact to a uid. Returns None for an
            unknown contact and raises on lookup failure.
        send_token: Transmits a token out-of-band. Raises on failure.
        options: TTL and token algorithm for this method.
        name: Method name, or None for the default method.
    """

    resolve_user: ResolveUser
    send_token: SendToken
    options: DeliveryOptions = field(
        default_factory=lambda: DeliveryOptions(ttl_ms=DEFAULT_TTL_MS)
    )
    name: str | None = None

    def generate_token(self) -> str:
        """Produce a token with this method's algorithm.

        Numeric tokens take precedence when number_token_max is set; a
        custom token_algorithm comes next; otherwise the default base58
        generator is used.
        """
        if self.options.number_token_max is not None:
            return generate_number_token(int(self.options.number_token_max))
        if self.options.token_algorithm is not None:
            return str(self.options.token_algorithm())
        return generate_token()


@dataclass(frozen=True)
class UnnamedDelivery:
    method: DeliveryMethod


@dataclass(frozen=True)
class NamedDeliveries:
    methods: Mapping[str, DeliveryMethod]


class DeliveryRegistry:
    """Holds the registered delivery methods.

    Registration happens once at setup time; configuration mistakes raise
    ConfigurationError immediately.
    """

    def __init__(self) -> None:
        self._state: UnnamedDelivery | NamedDeliveries | None = None

    @property
    def is_empty(self) -> bool:
        return self._state is None

    @property
    def names(self) -> list[str]:
        """Names of the registered named methods (empty for a default setup)."""
        if isinstance(self._state, NamedDeliveries):
            return list(self._state.methods)
        return []

    def register_default(
        self,
        resolve_user: ResolveUser,
        send_token: SendToken,
        options: DeliveryOptions | None = None,
    ) -> DeliveryMethod:
        """Register the single unnamed delivery method.

        Raises:
            ConfigurationError: If any method is already registered.
        """
        _check_callables(resolve_user, send_token)
        if isinstance(self._state, UnnamedDelivery):
            msg = (
                "Only one default delivery method shall be defined. "
                "Use named delivery methods instead"
            )
            raise ConfigurationError(msg)
        if isinstance(self._state, NamedDeliveries):
            msg = "Default delivery methods and named delivery methods shall not be mixed up"
            raise ConfigurationError(msg)

        method = DeliveryMethod(
            resolve_user=resolve_user,
            send_token=send_token,
            options=(options or DeliveryOptions()).with_ttl_default(DEFAULT_TTL_MS),
        )
        self._state = UnnamedDelivery(method)
        logger.debug("Registered default delivery method")
        return method

    def register_named(
        self,
        name: str,
        resolve_user: ResolveUser,
        send_token: SendToken,
        options: DeliveryOptions | None = None,
    ) -> DeliveryMethod:
        """Register a named delivery method.

        Raises:
            ConfigurationError: If a default method exists, the name is
                already taken, or the name is not a non-empty string.
        """
        if not isinstance(name, str) or not name:
            msg = "Delivery method name must be a non-empty string"
            raise ConfigurationError(msg)
        _check_callables(resolve_user, send_token)
        if isinstance(self._state, UnnamedDelivery):
            msg = "Default delivery methods and named delivery methods shall not be mixed up"
            raise ConfigurationError(msg)

        existing: Mapping[str, DeliveryMethod] = (
            self._state.methods if isinstance(self._state, NamedDeliveries) else {}
        )
        if name in existing:
            msg = f"Only one named delivery method with the name '{name}' shall be added"
            raise ConfigurationError(msg)

        method = DeliveryMethod(
            resolve_user=resolve_user,
            send_token=send_token,
            options=(options or DeliveryOptions()).with_ttl_default(DEFAULT_TTL_MS),
            name=name,
        )
        self._state = NamedDeliveries(MappingProxyType({**existing, name: method}))
        logger.debug("Registered delivery method %s", name)
        return method

    def resolve(self, name: str | None = None) -> DeliveryMethod | None:
        """Pick the delivery method for a request.

        Returns the named method when ``name`` matches one, otherwise the
        default method. None when nothing matches (a named-only registry
        with no or an unknown selector).

        Raises:
            ConfigurationError: If no method is registered at all.
        """
        if self._state is None:
            msg = (
                "passwordless requires at least one delivery method which can be "
                "added using Passwordless.add_delivery()"
            )
            raise ConfigurationError(msg)
        if isinstance(self._state, UnnamedDelivery):
            return self._state.method
        if name:
            return self._state.methods.get(name)
        return None


def _check_callables(resolve_user: object, send_token: object) -> None:
    if not callable(resolve_user) or not callable(send_token):
        msg = "resolve_user and send_token must be callable"
        raise ConfigurationError(msg)
