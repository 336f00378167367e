"""Shared fixtures for passwordless tests.

Provides fakes for the collaborators the core talks to (delivery,
session, flash, clock) and a Passwordless instance wired with a default
delivery method over a small user directory.
"""

from collections.abc import Iterator, MutableMapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from passwordless.core.context import MappingSession
from passwordless.services.passwordless import Passwordless
from passwordless.services.token_store import InMemoryTokenStore

# contact -> uid
KNOWN_USERS = {
    "alice@example.com": "u-alice",
    "+15550100": "u-alice",
    "bob@example.com": "u-bob",
}

FIXED_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


async def resolve_known_user(
    contact: str,
    selector: str | None,  # noqa: ARG001
    context: Any,  # noqa: ARG001
) -> str | None:
    """resolve_user over KNOWN_USERS."""
    return KNOWN_USERS.get(contact)


@dataclass
class SentToken:
    token: str
    uid: str
    recipient: str


class RecordingDelivery:
    """send_token fake that records what would have been transmitted."""

    def __init__(self, *, fail: bool = False) -> None:
        self.sent: list[SentToken] = []
        self.fail = fail

    async def __call__(self, token: str, uid: str, recipient: str, context: Any) -> None:  # noqa: ARG002
        if self.fail:
            msg = "SMTP server unavailable"
            raise RuntimeError(msg)
        self.sent.append(SentToken(token=token, uid=uid, recipient=recipient))

    @property
    def last(self) -> SentToken:
        return self.sent[-1]


class FakeSession(MappingSession):
    """Session capability that counts forced saves."""

    def __init__(
        self,
        data: MutableMapping[str, Any] | None = None,
        *,
        fail_save: bool = False,
    ) -> None:
        self.data: MutableMapping[str, Any] = data if data is not None else {}
        super().__init__(self.data)
        self.saves = 0
        self.fail_save = fail_save

    async def save(self) -> None:
        if self.fail_save:
            msg = "session backend unavailable"
            raise RuntimeError(msg)
        self.saves += 1


class RecordingFlash:
    """Flash capability that keeps (category, message) pairs in order."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def add(self, category: str, message: str) -> None:
        self.messages.append((category, message))


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable rate limiting during tests.

    Rate limiting is tested separately; disable for other tests to avoid
    flaky failures from rate limit triggers.
    """
    from passwordless.core.rate_limiting import limiter

    original_enabled = limiter.enabled
    limiter.enabled = False

    yield

    limiter.enabled = original_enabled


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token_store(clock: FakeClock) -> InMemoryTokenStore:
    """Fresh in-memory store on the fake clock."""
    return InMemoryTokenStore(clock=clock)


@pytest.fixture
def delivery() -> RecordingDelivery:
    return RecordingDelivery()


@pytest.fixture
def core(token_store: InMemoryTokenStore, delivery: RecordingDelivery) -> Passwordless:
    """Passwordless with one default delivery method over KNOWN_USERS."""
    passwordless = Passwordless(token_store)
    passwordless.add_delivery(delivery, resolve_user=resolve_known_user)
    return passwordless


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def flash() -> RecordingFlash:
    return RecordingFlash()
