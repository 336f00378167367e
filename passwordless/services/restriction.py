"""Restriction gate: only requests with an attached identity may proceed."""

from typing import TYPE_CHECKING
from urllib.parse import quote, urlsplit

from passwordless.core.context import FLASH_FAILURE, AuthContext
from passwordless.core.errors import ConfigurationError
from passwordless.core.options import RestrictedOptions
from passwordless.core.outcomes import Outcome, Proceed, Reject
from passwordless.services.session_bridge import redirect_with_session_save

if TYPE_CHECKING:
    from passwordless.services.passwordless import Passwordless

_TOKEN_CHALLENGE = "Provide a token"


def append_origin(target: str, origin_field: str, origin_url: str) -> str:
    """Append ``origin_field=<origin_url>`` to ``target``'s query string."""
    separator = "&" if urlsplit(target).query else "?"
    return f"{target}{separator}{origin_field}={quote(origin_url, safe='')}"


async def restricted(
    core: "Passwordless",
    context: AuthContext,
    options: RestrictedOptions | None = None,
) -> Outcome:
    """Let authenticated requests through; redirect or challenge the rest.

    Raises:
        ConfigurationError: If failure_flash is set but flash is unavailable.
    """
    options = options or RestrictedOptions()
    if context.is_authenticated:
        return Proceed(context)

    if not options.failure_redirect:
        return Reject(401, challenge=_TOKEN_CHALLENGE)

    target = options.failure_redirect
    if options.origin_field:
        target = append_origin(target, options.origin_field, context.url)

    if options.failure_flash:
        if context.flash is None:
            msg = "To use failure_flash, flash support is required"
            raise ConfigurationError(msg)
        context.flash.add(FLASH_FAILURE, options.failure_flash)

    return await redirect_with_session_save(
        context, target, skip_force_session_save=core.skip_force_session_save
    )
