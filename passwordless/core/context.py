"""Request-scoped authentication context.

An AuthContext is built once per incoming request by the web binding and
threaded through every procedure. Procedures never mutate it: they return
a new context (via ``with_identity`` / ``with_uid_to_auth``) inside their
outcome.

The session and flash capabilities are optional collaborators supplied by
the surrounding framework. ``None`` means the capability is not installed.
"""

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

# Session key under which the authenticated uid is mirrored
SESSION_IDENTITY_KEY = "passwordless"

# Session key holding pending flash messages, grouped by category
SESSION_FLASH_KEY = "_passwordless_flash"

FLASH_FAILURE = "passwordless"
FLASH_SUCCESS = "passwordless-success"


class SessionStore(Protocol):
    """Session capability consumed by the session bridge."""

    def get_identity(self) -> str | None: ...

    def set_identity(self, uid: str) -> None: ...

    def clear_identity(self) -> None: ...

    async def save(self) -> None: ...


class FlashMessages(Protocol):
    """Flash message capability (one-shot messages shown on the next page)."""

    def add(self, category: str, message: str) -> None: ...


class MappingSession:
    """SessionStore over a mutable mapping (e.g., Starlette's ``request.session``).

    Cookie-backed sessions are written together with the response, so
    ``save()`` has nothing to do. Server-side session backends should
    subclass and persist here.
    """

    def __init__(self, data: MutableMapping[str, Any]) -> None:
        self._data = data

    def get_identity(self) -> str | None:
        uid = self._data.get(SESSION_IDENTITY_KEY)
        return str(uid) if uid is not None else None

    def set_identity(self, uid: str) -> None:
        self._data[SESSION_IDENTITY_KEY] = uid

    def clear_identity(self) -> None:
        self._data.pop(SESSION_IDENTITY_KEY, None)

    async def save(self) -> None:
        return None


class SessionFlash:
    """Flash messages stored in the session until popped."""

    def __init__(self, data: MutableMapping[str, Any]) -> None:
        self._data = data

    def add(self, category: str, message: str) -> None:
        flashes: dict[str, list[str]] = self._data.setdefault(SESSION_FLASH_KEY, {})
        flashes.setdefault(category, []).append(message)
        # Re-assign so change-tracking session backends notice the update
        self._data[SESSION_FLASH_KEY] = flashes

    def pop(self, category: str) -> list[str]:
        """Remove and return all messages of ``category``."""
        flashes: dict[str, list[str]] = self._data.get(SESSION_FLASH_KEY, {})
        messages = flashes.pop(category, [])
        if flashes:
            self._data[SESSION_FLASH_KEY] = flashes
        else:
            self._data.pop(SESSION_FLASH_KEY, None)
        return messages


@dataclass(frozen=True)
class AuthContext:
    """Everything the core needs to know about one in-flight request.

    Attributes:
        method: HTTP method (upper case).
        url: Originally requested path plus query string.
        query: Query parameters.
        body: Parsed body fields, or None if no body parser ran upstream.
        session: Session capability, or None if no session middleware.
        flash: Flash capability, or None if unavailable.
        user_property: Attribute name under which the identity is exposed.
        identity: Authenticated uid attached to this request, if any.
        uid_to_auth: uid resolved by a token request during this request only.
    """

    method: str = "GET"
    url: str = "/"
    query: Mapping[str, Any] = field(default_factory=dict)
    body: Mapping[str, Any] | None = None
    session: SessionStore | None = None
    flash: FlashMessages | None = None
    user_property: str = "user"
    identity: str | None = None
    uid_to_auth: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.identity)

    def with_identity(self, uid: str | None) -> "AuthContext":
        return replace(self, identity=uid)

    def with_uid_to_auth(self, uid: str) -> "AuthContext":
        return replace(self, uid_to_auth=uid)
