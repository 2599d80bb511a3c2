# portal/core/auth.py
import logging

from fastapi import Depends, HTTPException, Request, status
from pydantic import ValidationError

from portal.core.config import get_settings
from portal.core.sessions import rotate_session
from portal.schemas.identity import Identity

logger = logging.getLogger(__name__)

IDENTITY_KEY = "identity"


class LoginRequired(Exception):
    """
    Raised by `require_authenticated`.

    main.py registers a handler that answers with a redirect to /login.
    """


def get_current_identity(request: Request) -> Identity | None:
    """
    Resolve the logged-in Discord user from the server-side session.

    Flow:
      1. No identity stored => guest => return None.
      2. Re-validate the stored dict into an Identity.
      3. If the stored shape is invalid, drop it and treat as guest.

    Returns:
        Identity if logged in, else None.
    """
    raw = request.session.get(IDENTITY_KEY)
    if raw is None:
        return None

    try:
        return Identity.model_validate(raw)
    except ValidationError:
        logger.warning("Discarding malformed identity stored in session")
        request.session.pop(IDENTITY_KEY, None)
        return None


def login(request: Request, identity: Identity) -> None:
    """
    Attach `identity` to the current session.

    The session moves to a new id so a pre-login cookie cannot be reused.
    """
    request.session[IDENTITY_KEY] = identity.model_dump()
    rotate_session(request)


def logout(request: Request) -> None:
    """Forget the session's identity; safe to call when logged out."""
    request.session.pop(IDENTITY_KEY, None)


def require_authenticated(
    identity: Identity | None = Depends(get_current_identity),
) -> Identity:
    """
    Enforce login.

    Returns:
        The logged-in Identity.

    Raises:
        LoginRequired: if nobody is logged in (redirects to /login).
    """
    if identity is None:
        raise LoginRequired()
    return identity


def require_admin(identity: Identity = Depends(require_authenticated)) -> Identity:
    """
    Enforce the single configured admin.

    Route is accessible only if:
      - identity.id == ADMIN_DISCORD_ID

    An unset ADMIN_DISCORD_ID locks everyone out.

    Raises:
        HTTPException(403): for any other logged-in user.
    """
    admin_id = get_settings().ADMIN_DISCORD_ID
    if not admin_id or identity.id != admin_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized",
        )
    return identity
