"""Accept-token procedure.

Pass-through stage that looks for a (token, uid) pair on the request. When
both are present and the store accepts them, the uid becomes the request's
identity, is mirrored into the session, and (unless token reuse is allowed)
every outstanding token for the uid is invalidated. Absent or invalid
credentials are not errors: the request proceeds without an identity.

Redirect preference after success: the origin URL stored with the token
(when origin redirects are enabled), then the configured success redirect,
otherwise no redirect.
"""

import logging
from typing import TYPE_CHECKING, Any

from passwordless.core.context import FLASH_FAILURE, FLASH_SUCCESS, AuthContext
from passwordless.core.errors import ConfigurationError, TokenStoreError
from passwordless.core.options import AcceptTokenOptions
from passwordless.core.outcomes import Outcome, Proceed
from passwordless.services.session_bridge import (
    persist_identity,
    redirect_with_session_save,
)
from passwordless.services.token_store import ConsumingTokenStore

if TYPE_CHECKING:
    from passwordless.services.passwordless import Passwordless

logger = logging.getLogger(__name__)


def _extract_credentials(
    context: AuthContext,
    options: AcceptTokenOptions,
) -> tuple[Any, Any]:
    if options.allow_post and context.body is None:
        msg = (
            "Request body is not available: a body parser is required "
            "to accept tokens via POST"
        )
        raise ConfigurationError(msg)

    token = context.query.get(options.token_field)
    uid = context.query.get(options.uid_field)
    if not token and not uid and options.allow_post and context.body is not None:
        if context.body.get(options.token_field) and context.body.get(options.uid_field):
            token = context.body[options.token_field]
            uid = context.body[options.uid_field]
    return token, uid


async def _authenticate(
    core: "Passwordless",
    token: str,
    uid: str,
) -> tuple[bool, str | None]:
    """Authenticate, invalidating the uid's tokens unless reuse is allowed."""
    store = core.token_store
    if not core.allow_token_reuse and isinstance(store, ConsumingTokenStore):
        try:
            return await store.consume(token, uid)
        except Exception as exc:
            logger.exception("Token store failed to consume token")
            msg = "Error on the storage layer"
            raise TokenStoreError(msg) from exc

    try:
        valid, origin_url = await store.authenticate(token, uid)
    except Exception as exc:
        logger.exception("Token store failed to authenticate token")
        msg = "Error on the storage layer"
        raise TokenStoreError(msg) from exc

    if valid and not core.allow_token_reuse:
        try:
            await store.invalidate_user(uid)
        except Exception as exc:
            logger.exception("Token store failed to invalidate user")
            msg = "Error on the storage layer"
            raise TokenStoreError(msg) from exc

    return valid, origin_url


async def accept_token(
    core: "Passwordless",
    context: AuthContext,
    options: AcceptTokenOptions | None = None,
) -> Outcome:
    """Authenticate the request from the token and uid it carries, if any.

    Args:
        core: Configured Passwordless instance.
        context: Request context.
        options: Field names, redirects and flash messages.

    Returns:
        Proceed (with or without identity) or a Redirect after success.

    Raises:
        ConfigurationError: If the system is wired incorrectly.
        TokenStoreError: If the store fails.
    """
    options = options or AcceptTokenOptions()
    if core.token_store is None:
        msg = "Passwordless is missing a TokenStore"
        raise ConfigurationError(msg)

    token, uid = _extract_credentials(context, options)

    if options.uses_flash and context.flash is None:
        msg = "To use failure_flash or success_flash, flash support is required"
        raise ConfigurationError(msg)

    if not token or not uid:
        return Proceed(context)

    token, uid = str(token), str(uid)
    valid, origin_url = await _authenticate(core, token, uid)

    if not valid:
        logger.debug("Rejected passwordless token for uid=%s", uid)
        if options.failure_flash and context.flash is not None:
            context.flash.add(FLASH_FAILURE, options.failure_flash)
        return Proceed(context)

    logger.info("Accepted passwordless token for uid=%s", uid)
    context = context.with_identity(uid)
    persist_identity(context, uid)
    if options.success_flash and context.flash is not None:
        context.flash.add(FLASH_SUCCESS, options.success_flash)

    if options.enable_origin_redirect and origin_url:
        return await redirect_with_session_save(
            context, origin_url, skip_force_session_save=core.skip_force_session_save
        )
    if options.success_redirect:
        return await redirect_with_session_save(
            context,
            options.success_redirect,
            skip_force_session_save=core.skip_force_session_save,
        )
    return Proceed(context)
