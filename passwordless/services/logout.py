"""Logout procedure.

Clears the session identity and the request identity, then invalidates the
user's outstanding tokens. Invalidation is best-effort: a store failure is
logged (and flashed when flash is available) but never keeps the user
signed in.
"""

import logging
from typing import TYPE_CHECKING

from passwordless.core.context import FLASH_FAILURE, FLASH_SUCCESS, AuthContext
from passwordless.core.errors import ConfigurationError
from passwordless.core.options import LogoutOptions
from passwordless.core.outcomes import Proceed

if TYPE_CHECKING:
    from passwordless.services.passwordless import Passwordless

logger = logging.getLogger(__name__)

_INVALIDATION_FAILED_MSG = "Your outstanding sign-in links could not be revoked"


async def logout(
    core: "Passwordless",
    context: AuthContext,
    options: LogoutOptions | None = None,
) -> Proceed:
    """Sign the current user out. A no-op when nobody is signed in.

    Raises:
        ConfigurationError: If success_flash is set but flash is unavailable.
    """
    options = options or LogoutOptions()

    if context.session is not None:
        context.session.clear_identity()

    uid = context.identity
    if not uid:
        return Proceed(context)

    if options.success_flash and context.flash is None:
        msg = "To use success_flash, flash support is required"
        raise ConfigurationError(msg)

    context = context.with_identity(None)
    try:
        await core.token_store.invalidate_user(uid)
    except Exception:
        logger.warning("Failed to invalidate tokens for uid=%s on logout", uid, exc_info=True)
        if context.flash is not None:
            context.flash.add(FLASH_FAILURE, _INVALIDATION_FAILED_MSG)
    else:
        logger.info("Logged out uid=%s", uid)

    if options.success_flash and context.flash is not None:
        context.flash.add(FLASH_SUCCESS, options.success_flash)
    return Proceed(context)
