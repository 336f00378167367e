"""Tests for the restriction gate."""

import pytest

from passwordless.core.context import FLASH_FAILURE, AuthContext
from passwordless.core.errors import ConfigurationError, SessionError
from passwordless.core.options import RestrictedOptions
from passwordless.core.outcomes import Proceed, Redirect, Reject
from passwordless.services.restriction import append_origin
from tests.conftest import FakeSession


class TestAppendOrigin:
    def test_uses_question_mark_without_query(self):
        assert append_origin("/login", "origin", "/admin") == "/login?origin=%2Fadmin"

    def test_uses_ampersand_with_existing_query(self):
        assert append_origin("/login?lang=en", "origin", "/admin") == (
            "/login?lang=en&origin=%2Fadmin"
        )

    def test_encodes_query_of_origin(self):
        assert append_origin("/login", "next", "/admin?tab=users&page=2") == (
            "/login?next=%2Fadmin%3Ftab%3Dusers%26page%3D2"
        )


class TestRestricted:
    async def test_authenticated_request_proceeds(self, core):
        context = AuthContext(identity="u-alice")
        assert await core.restricted(context) == Proceed(context)

    async def test_anonymous_request_is_challenged(self, core):
        outcome = await core.restricted(AuthContext())
        assert outcome == Reject(401, challenge="Provide a token")

    async def test_redirects_when_configured(self, core, session):
        options = RestrictedOptions(failure_redirect="/login")
        outcome = await core.restricted(AuthContext(session=session), options)

        assert outcome == Redirect("/login")
        assert session.saves == 1

    async def test_redirect_carries_origin(self, core):
        options = RestrictedOptions(failure_redirect="/login", origin_field="origin")
        context = AuthContext(url="/admin?tab=users")

        outcome = await core.restricted(context, options)

        assert outcome == Redirect("/login?origin=%2Fadmin%3Ftab%3Dusers")

    async def test_flashes_before_redirect(self, core, flash):
        options = RestrictedOptions(failure_redirect="/login", failure_flash="Please sign in")
        await core.restricted(AuthContext(flash=flash), options)
        assert flash.messages == [(FLASH_FAILURE, "Please sign in")]

    async def test_flash_requires_flash_support(self, core):
        options = RestrictedOptions(failure_redirect="/login", failure_flash="Please sign in")
        with pytest.raises(ConfigurationError, match="flash"):
            await core.restricted(AuthContext(), options)

    async def test_session_save_failure(self, core):
        options = RestrictedOptions(failure_redirect="/login")
        context = AuthContext(session=FakeSession(fail_save=True))

        with pytest.raises(SessionError):
            await core.restricted(context, options)
