"""Session bridge: mirror the authenticated uid into the session and back.

Restore copies a stored identity onto the request context. Persist writes a
freshly authenticated uid into the session. Every redirect emitted by the
procedures goes through ``redirect_with_session_save`` so the session is
durably written before the client is told to go elsewhere.
"""

import logging

from passwordless.core.context import AuthContext
from passwordless.core.errors import ConfigurationError, SessionError
from passwordless.core.outcomes import Proceed, Redirect

logger = logging.getLogger(__name__)


def restore_session(context: AuthContext) -> Proceed:
    """Attach the session's stored identity to the context.

    Idempotent: restoring twice without an intervening write yields the
    same identity.

    Raises:
        ConfigurationError: If no session capability is installed.
    """
    if context.session is None:
        msg = "session support requires session middleware (e.g. Starlette SessionMiddleware)"
        raise ConfigurationError(msg)

    uid = context.session.get_identity()
    if uid:
        return Proceed(context.with_identity(uid))
    return Proceed(context)


def persist_identity(context: AuthContext, uid: str) -> None:
    """Write ``uid`` into the session, if this request has one."""
    if context.session is not None:
        context.session.set_identity(uid)


async def redirect_with_session_save(
    context: AuthContext,
    target: str,
    *,
    skip_force_session_save: bool = False,
) -> Redirect:
    """Await the session write, then return a redirect to ``target``.

    Args:
        context: Request context.
        target: Redirect location.
        skip_force_session_save: Session backends that persist together
            with the response (cookie sessions) do not need the forced save.

    Raises:
        SessionError: If the session could not be saved.
    """
    if context.session is not None and not skip_force_session_save:
        try:
            await context.session.save()
        except Exception as exc:
            logger.exception("Session save failed before redirect")
            msg = "Could not save the session before redirecting"
            raise SessionError(msg) from exc
    return Redirect(target)
