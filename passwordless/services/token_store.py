"""Token store contract and in-memory implementation.

The core only talks to persistence through the TokenStore protocol. Stores
authenticate in token+uid mode: the uid travels with the token in the link,
and a token is only valid for the uid it was issued to.

Policy shared by the bundled stores:
- One active record per uid. Storing a new token for a uid replaces the
  previous record.
- Token values only need to be unique per uid. Two uids may hold the same
  value (short numeric codes collide), since lookups always go by uid.
- A record is valid while now < expires_at. Expiry is a data comparison,
  not a scheduled eviction.
"""

import asyncio
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol, runtime_checkable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


def _same_token(stored: str, presented: str) -> bool:
    return secrets.compare_digest(stored.encode(), presented.encode())


@runtime_checkable
class TokenStore(Protocol):
    """Persistence contract for one-time tokens."""

    async def authenticate(self, token: str, uid: str) -> tuple[bool, str | None]:
        """Return (valid, origin_url) for a token presented together with a uid."""
        ...

    async def store_or_update(
        self,
        token: str,
        uid: str,
        ttl_ms: int | float,
        origin_url: str | None = None,
    ) -> None:
        """Create the uid's record, replacing any previous one."""
        ...

    async def invalidate_user(self, uid: str) -> None:
        """Remove every outstanding token for ``uid``."""
        ...

    async def length(self) -> int:
        """Number of stored records (diagnostic hook)."""
        ...


@runtime_checkable
class ConsumingTokenStore(TokenStore, Protocol):
    """A store that can authenticate and invalidate in one atomic step."""

    async def consume(self, token: str, uid: str) -> tuple[bool, str | None]:
        """Authenticate and, on success, invalidate the uid's tokens atomically."""
        ...


@dataclass
class TokenRecord:
    """A stored token.

    Attributes:
        uid: Owner of the token.
        token: Token value.
        expires_at: Absolute expiry; valid only while now < expires_at.
        origin_url: Where to send the user after authentication.
    """

    uid: str
    token: str
    expires_at: datetime
    origin_url: str | None = None


class InMemoryTokenStore:
    """In-memory token store.

    Safe for concurrent use from one event loop: every operation runs under
    an asyncio.Lock, so consume() cannot be won twice for the same token.
    Not shared across processes; use SqlAlchemyTokenStore for that.
    """

    def __init__(self, clock: Clock = utcnow) -> None:
        """Initialize the token store.

        Args:
            clock: Returns the current time. Injected by tests.
        """
        self._records: dict[str, TokenRecord] = {}
        self._clock = clock
        self._lock = asyncio.Lock()

    async def authenticate(self, token: str, uid: str) -> tuple[bool, str | None]:
        async with self._lock:
            record = self._find_valid(token, uid)
        if record is None:
            return False, None
        return True, record.origin_url

    async def consume(self, token: str, uid: str) -> tuple[bool, str | None]:
        async with self._lock:
            record = self._find_valid(token, uid)
            if record is None:
                return False, None
            del self._records[uid]
        return True, record.origin_url

    async def store_or_update(
        self,
        token: str,
        uid: str,
        ttl_ms: int | float,
        origin_url: str | None = None,
    ) -> None:
        if not token or not uid or ttl_ms <= 0:
            msg = "token, uid and a positive ttl_ms are required"
            raise ValueError(msg)

        async with self._lock:
            # Re-insert so the newest record is last in iteration order
            self._records.pop(uid, None)
            self._records[uid] = TokenRecord(
                uid=uid,
                token=token,
                expires_at=self._clock() + timedelta(milliseconds=ttl_ms),
                origin_url=origin_url,
            )

    async def invalidate_user(self, uid: str) -> None:
        async with self._lock:
            self._records.pop(uid, None)

    async def length(self) -> int:
        return len(self._records)

    async def cleanup_expired(self) -> int:
        """Remove all expired records.

        Returns:
            Number of records removed.
        """
        async with self._lock:
            now = self._clock()
            expired = [
                uid for uid, record in self._records.items() if now >= record.expires_at
            ]
            for uid in expired:
                del self._records[uid]
        return len(expired)

    async def clear(self) -> None:
        """Clear all records (for testing)."""
        async with self._lock:
            self._records.clear()

    def last_record(self) -> TokenRecord | None:
        """Most recently stored record, or None (for testing)."""
        if not self._records:
            return None
        return next(reversed(self._records.values()))

    def _find_valid(self, token: str, uid: str) -> TokenRecord | None:
        record = self._records.get(uid)
        if record is None:
            return None
        if not _same_token(record.token, token):
            return None
        if self._clock() >= record.expires_at:
            # Clean up expired token
            del self._records[uid]
            return None
        return record
