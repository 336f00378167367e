"""Tests for InMemoryTokenStore.

Covers:
- store_or_update: one record per uid, shared values across uids, argument checks
- authenticate: token+uid matching, TTL boundary, origin URL
- consume: single use, also under concurrency
- invalidate_user, cleanup_expired, clear, last_record
"""

import asyncio
from datetime import timedelta

import pytest

from passwordless.services.token_store import (
    ConsumingTokenStore,
    TokenStore,
)

_TOKEN = "4vQ9kXgT2mN8pRsWzYbC7d"
_OTHER_TOKEN = "9hJ3nB6cVxZ2mK8pLq4RtW"
_TTL_MS = 60_000


class TestProtocols:
    def test_satisfies_token_store_protocols(self, token_store):
        assert isinstance(token_store, TokenStore)
        assert isinstance(token_store, ConsumingTokenStore)


# =============================================================================
# store_or_update
# =============================================================================


class TestStoreOrUpdate:
    async def test_stored_token_authenticates(self, token_store):
        await token_store.store_or_update(_TOKEN, "u-alice", _TTL_MS)
        assert await token_store.authenticate(_TOKEN, "u-alice") == (True, None)

    async def test_keeps_origin_url(self, token_store):
        await token_store.store_or_update(_TOKEN, "u-alice", _TTL_MS, "/dashboard")
        assert await token_store.authenticate(_TOKEN, "u-alice") == (True, "/dashboard")

    async def test_new_token_replaces_previous_one(self, token_store):
        await token_store.store_or_update(_TOKEN, "u-alice", _TTL_MS)
        await token_store.store_or_update(_OTHER_TOKEN, "u-alice", _TTL_MS)

        assert await token_store.length() == 1
        assert await token_store.authenticate(_TOKEN, "u-alice") == (False, None)
        assert await token_store.authenticate(_OTHER_TOKEN, "u-alice") == (True, None)

    async def test_other_uid_may_hold_same_value(self, token_store):
        await token_store.store_or_update("1234", "u-alice", _TTL_MS)
        await token_store.store_or_update("1234", "u-bob", _TTL_MS)

        assert await token_store.length() == 2
        assert await token_store.consume("1234", "u-alice") == (True, None)
        assert await token_store.authenticate("1234", "u-bob") == (True, None)

    async def test_value_of_expired_record_can_be_reissued(self, token_store, clock):
        await token_store.store_or_update("1234", "u-bob", 100)
        clock.advance(seconds=10)

        await token_store.store_or_update("1234", "u-alice", _TTL_MS)

        assert await token_store.authenticate("1234", "u-alice") == (True, None)
        assert await token_store.authenticate("1234", "u-bob") == (False, None)

    async def test_same_uid_may_restore_same_token(self, token_store, clock):
        await token_store.store_or_update(_TOKEN, "u-alice", _TTL_MS)
        clock.advance(seconds=30)
        await token_store.store_or_update(_TOKEN, "u-alice", _TTL_MS)
        assert token_store.last_record().expires_at == clock.now + timedelta(milliseconds=_TTL_MS)
        clock.advance(seconds=45)
        assert await token_store.authenticate(_TOKEN, "u-alice") == (True, None)

    @pytest.mark.parametrize(
        ("token", "uid", "ttl_ms"),
        [("", "u-alice", _TTL_MS), (_TOKEN, "", _TTL_MS), (_TOKEN, "u-alice", 0)],
    )
    async def test_rejects_missing_arguments(self, token_store, token, uid, ttl_ms):
        with pytest.raises(ValueError, match="required"):
            await token_store.store_or_update(token, uid, ttl_ms)

    async def test_last_record_is_most_recent(self, token_store):
        await token_store.store_or_update(_TOKEN, "u-alice", _TTL_MS)
        await token_store.store_or_update(_OTHER_TOKEN, "u-bob", _TTL_MS)
        await token_store.store_or_update("3mR7tY1uI9oP2aS5dF8gH4", "u-alice", _TTL_MS)

        record = token_store.last_record()
        assert record.uid == "u-alice"
        assert record.token == "3mR7tY1uI9oP2aS5dF8gH4"


# =============================================================================
# authenticate
# =============================================================================


class TestAuthenticate:
    async def test_wrong_token(self, token_store):
        await token_store.store_or_update(_TOKEN, "u-alice", _TTL_MS)
        assert await token_store.authenticate(_OTHER_TOKEN, "u-alice") == (False, None)

    async def test_token_bound_to_uid(self, token_store):
        await token_store.store_or_update(_TOKEN, "u-alice", _TTL_MS)
        assert await token_store.authenticate(_TOKEN, "u-bob") == (False, None)

    async def test_unknown_uid(self, token_store):
        assert await token_store.authenticate(_TOKEN, "u-nobody") == (False, None)

    async def test_non_ascii_token_does_not_raise(self, token_store):
        await token_store.store_or_update(_TOKEN, "u-alice", _TTL_MS)
        assert await token_store.authenticate("tökén", "u-alice") == (False, None)

    async def test_valid_just_before_expiry(self, token_store, clock):
        await token_store.store_or_update(_TOKEN, "u-alice", 1_000)
        clock.advance(milliseconds=999)
        assert await token_store.authenticate(_TOKEN, "u-alice") == (True, None)

    async def test_invalid_at_expiry(self, token_store, clock):
        await token_store.store_or_update(_TOKEN, "u-alice", 1_000)
        clock.advance(milliseconds=1_000)
        assert await token_store.authenticate(_TOKEN, "u-alice") == (False, None)

    async def test_expired_record_is_removed(self, token_store, clock):
        await token_store.store_or_update(_TOKEN, "u-alice", 1_000)
        clock.advance(seconds=5)
        await token_store.authenticate(_TOKEN, "u-alice")
        assert await token_store.length() == 0

    async def test_authenticate_does_not_consume(self, token_store):
        await token_store.store_or_update(_TOKEN, "u-alice", _TTL_MS)
        await token_store.authenticate(_TOKEN, "u-alice")
        assert await token_store.authenticate(_TOKEN, "u-alice") == (True, None)


# =============================================================================
# consume
# =============================================================================


class TestConsume:
    async def test_consume_is_single_use(self, token_store):
        await token_store.store_or_update(_TOKEN, "u-alice", _TTL_MS, "/next")
        assert await token_store.consume(_TOKEN, "u-alice") == (True, "/next")
        assert await token_store.consume(_TOKEN, "u-alice") == (False, None)
        assert await token_store.length() == 0

    async def test_consume_wrong_token_keeps_record(self, token_store):
        await token_store.store_or_update(_TOKEN, "u-alice", _TTL_MS)
        assert await token_store.consume(_OTHER_TOKEN, "u-alice") == (False, None)
        assert await token_store.length() == 1

    async def test_concurrent_consume_has_one_winner(self, token_store):
        await token_store.store_or_update(_TOKEN, "u-alice", _TTL_MS)
        results = await asyncio.gather(
            *(token_store.consume(_TOKEN, "u-alice") for _ in range(10))
        )
        assert [valid for valid, _ in results].count(True) == 1


# =============================================================================
# Maintenance
# =============================================================================


class TestMaintenance:
    async def test_invalidate_user(self, token_store):
        await token_store.store_or_update(_TOKEN, "u-alice", _TTL_MS)
        await token_store.store_or_update(_OTHER_TOKEN, "u-bob", _TTL_MS)

        await token_store.invalidate_user("u-alice")

        assert await token_store.authenticate(_TOKEN, "u-alice") == (False, None)
        assert await token_store.authenticate(_OTHER_TOKEN, "u-bob") == (True, None)

    async def test_invalidate_unknown_user_is_noop(self, token_store):
        await token_store.invalidate_user("u-nobody")
        assert await token_store.length() == 0

    async def test_cleanup_expired(self, token_store, clock):
        await token_store.store_or_update(_TOKEN, "u-alice", 1_000)
        await token_store.store_or_update(_OTHER_TOKEN, "u-bob", _TTL_MS)
        clock.advance(seconds=2)

        assert await token_store.cleanup_expired() == 1
        assert await token_store.length() == 1
        assert token_store.last_record().uid == "u-bob"

    async def test_clear(self, token_store):
        await token_store.store_or_update(_TOKEN, "u-alice", _TTL_MS)
        await token_store.clear()
        assert await token_store.length() == 0
        assert token_store.last_record() is None
