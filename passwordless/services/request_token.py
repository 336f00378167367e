"""Request-token procedure.

Resolve the submitted contact to a uid, pick a delivery method, generate a
token, persist it with its TTL and origin, transmit it, and mark the uid on
the request context.

Failure handling:
- Missing or non-scalar contact field, or no matching delivery method: 400.
  Numeric contacts are passed on as strings.
- Empty contact or unknown contact: 401 with a challenge.
- Either of the above becomes a redirect when a failure target is set.
- Resolver, generator, store and delivery failures raise CollaboratorError
  subclasses (500).

A delivery failure does not roll back the stored token. The token stays
valid until it expires or is superseded, even though the caller sees an
error.
"""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from passwordless.core.context import FLASH_FAILURE, FLASH_SUCCESS, AuthContext
from passwordless.core.errors import (
    ConfigurationError,
    DeliveryError,
    TokenGenerationError,
    TokenStoreError,
    UserResolutionError,
)
from passwordless.core.options import RequestTokenOptions
from passwordless.core.outcomes import Outcome, Proceed, Reject
from passwordless.services.session_bridge import redirect_with_session_save

if TYPE_CHECKING:
    from passwordless.services.passwordless import Passwordless

logger = logging.getLogger(__name__)

_INVALID_USER_CHALLENGE = "Provide a valid user"


def _check_preconditions(
    core: "Passwordless",
    context: AuthContext,
    options: RequestTokenOptions,
) -> None:
    if core.token_store is None:
        msg = "Passwordless is missing a TokenStore"
        raise ConfigurationError(msg)
    if context.body is None and not options.allow_get:
        msg = (
            "Request body is not available: a body parser is required "
            "before requesting tokens"
        )
        raise ConfigurationError(msg)
    if core.delivery.is_empty:
        msg = (
            "passwordless requires at least one delivery method which can be "
            "added using Passwordless.add_delivery()"
        )
        raise ConfigurationError(msg)
    if options.uses_flash and context.flash is None:
        msg = "To use failure_flash or success_flash, flash support is required"
        raise ConfigurationError(msg)


def _extract_fields(
    context: AuthContext,
    options: RequestTokenOptions,
) -> tuple[Any, str | None, str | None]:
    """Read (contact, delivery selector, origin) from body or query."""
    source: Mapping[str, Any] | None = None
    if context.method == "POST" and context.body is not None:
        source = context.body
    elif options.allow_get and context.method == "GET":
        source = context.query
    if source is None:
        return None, None, None

    delivery = source.get(options.delivery_field)
    origin = source.get(options.origin_field) if options.origin_field else None
    return (
        source.get(options.user_field),
        str(delivery) if delivery else None,
        str(origin) if origin else None,
    )


async def _reject(
    core: "Passwordless",
    context: AuthContext,
    options: RequestTokenOptions,
    status_code: int,
    *,
    unknown_user: bool,
) -> Outcome:
    target = options.failure_redirect
    if unknown_user and options.unknown_user_redirect:
        target = options.unknown_user_redirect
    if target:
        if options.failure_flash and context.flash is not None:
            context.flash.add(FLASH_FAILURE, options.failure_flash)
        return await redirect_with_session_save(
            context, target, skip_force_session_save=core.skip_force_session_save
        )
    if status_code == 401:
        return Reject(401, challenge=_INVALID_USER_CHALLENGE)
    return Reject(status_code)


async def request_token(
    core: "Passwordless",
    context: AuthContext,
    options: RequestTokenOptions | None = None,
) -> Outcome:
    """Issue and deliver a token for the contact submitted with this request.

    Args:
        core: Configured Passwordless instance.
        context: Request context.
        options: Field names, redirects and flash messages.

    Returns:
        Proceed with ``uid_to_auth`` set, a Redirect, or a Reject.

    Raises:
        ConfigurationError: If the system is wired incorrectly.
        CollaboratorError: If resolution, generation, storage or delivery fails.
    """
    options = options or RequestTokenOptions()
    _check_preconditions(core, context, options)

    contact, selector, origin = _extract_fields(context, options)
    # JSON bodies may carry phone numbers as numbers
    if isinstance(contact, int | float) and not isinstance(contact, bool):
        contact = str(contact)

    if contact == "":
        return await _reject(core, context, options, 401, unknown_user=True)
    if not isinstance(contact, str):
        return await _reject(core, context, options, 400, unknown_user=True)

    method = core.delivery.resolve(selector)
    if method is None:
        return await _reject(core, context, options, 400, unknown_user=False)

    try:
        uid = await method.resolve_user(contact, selector, context)
    except Exception as exc:
        logger.exception("User resolution failed")
        msg = "Error on the user verification layer"
        raise UserResolutionError(msg) from exc

    if uid is None or uid == "":
        return await _reject(core, context, options, 401, unknown_user=True)
    uid = str(uid)

    try:
        token = method.generate_token()
    except Exception as exc:
        logger.exception("Token generation failed")
        msg = "Error while generating a token"
        raise TokenGenerationError(msg) from exc

    try:
        await core.token_store.store_or_update(token, uid, method.options.ttl_ms, origin)
    except Exception as exc:
        logger.exception("Token store failed to persist token")
        msg = "Error on the storage layer"
        raise TokenStoreError(msg) from exc

    try:
        await method.send_token(token, uid, contact, context)
    except Exception as exc:
        logger.exception("Token delivery failed (delivery=%s)", method.name)
        msg = "Error on the delivery layer"
        raise DeliveryError(msg) from exc

    logger.info(
        "Issued passwordless token for uid=%s (delivery=%s, ttl_ms=%s)",
        uid,
        method.name,
        method.options.ttl_ms,
    )

    context = context.with_uid_to_auth(uid)
    if options.success_flash and context.flash is not None:
        context.flash.add(FLASH_SUCCESS, options.success_flash)
    if options.success_redirect:
        return await redirect_with_session_save(
            context,
            options.success_redirect,
            skip_force_session_save=core.skip_force_session_save,
        )
    return Proceed(context)
