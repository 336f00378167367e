"""Tests for the logout procedure."""

from unittest.mock import AsyncMock

import pytest

from passwordless.core.context import (
    FLASH_FAILURE,
    FLASH_SUCCESS,
    SESSION_IDENTITY_KEY,
    AuthContext,
)
from passwordless.core.errors import ConfigurationError
from passwordless.core.options import LogoutOptions
from passwordless.services.passwordless import Passwordless
from tests.conftest import FakeSession

_TOKEN = "4vQ9kXgT2mN8pRsWzYbC7d"


class TestLogout:
    async def test_anonymous_logout_is_noop(self, core, token_store):
        await token_store.store_or_update(_TOKEN, "u-alice", 60_000)
        context = AuthContext()

        outcome = await core.logout(context)

        assert outcome.context is context
        assert await token_store.length() == 1

    async def test_clears_identity_and_session(self, core):
        session = FakeSession({SESSION_IDENTITY_KEY: "u-alice"})
        context = AuthContext(session=session, identity="u-alice")

        outcome = await core.logout(context)

        assert outcome.context.identity is None
        assert SESSION_IDENTITY_KEY not in session.data

    async def test_invalidates_outstanding_tokens(self, core, token_store):
        await token_store.store_or_update(_TOKEN, "u-alice", 60_000)
        await core.logout(AuthContext(identity="u-alice"))
        assert await token_store.authenticate(_TOKEN, "u-alice") == (False, None)

    async def test_success_flash(self, core, flash):
        options = LogoutOptions(success_flash="Signed out")
        await core.logout(AuthContext(identity="u-alice", flash=flash), options)
        assert flash.messages == [(FLASH_SUCCESS, "Signed out")]

    async def test_success_flash_requires_flash_support(self, core):
        with pytest.raises(ConfigurationError, match="flash"):
            await core.logout(AuthContext(identity="u-alice"), LogoutOptions(success_flash="Bye"))

    async def test_store_failure_still_signs_out(self, flash):
        store = AsyncMock()
        store.invalidate_user.side_effect = RuntimeError("database gone")
        core = Passwordless(store)
        session = FakeSession({SESSION_IDENTITY_KEY: "u-alice"})

        outcome = await core.logout(
            AuthContext(identity="u-alice", session=session, flash=flash)
        )

        assert outcome.context.identity is None
        assert SESSION_IDENTITY_KEY not in session.data
        assert [category for category, _ in flash.messages] == [FLASH_FAILURE]
