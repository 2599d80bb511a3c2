# portal/routers/auth.py
import logging
import secrets

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse

from portal.core import auth
from portal.core.discord_client import DiscordAuthError, DiscordClient, get_discord_client
from portal.core.notifications import push_notification

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])

STATE_KEY = "oauth_state"


@router.get("/auth/discord")
def discord_login(
    request: Request,
    discord: DiscordClient = Depends(get_discord_client),
):
    """
    Start the Discord OAuth2 flow.

    A random `state` is kept in the session and checked on callback.
    """
    state = secrets.token_urlsafe(24)
    request.session[STATE_KEY] = state
    return RedirectResponse(discord.authorize_url(state), status_code=status.HTTP_303_SEE_OTHER)


@router.get("/auth/discord/callback")
def discord_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    discord: DiscordClient = Depends(get_discord_client),
):
    """
    OAuth2 redirect target.

    Success => identity stored in the session, redirect to /dashboard.
    Any failure => notification + redirect to /login.
    """
    expected_state = request.session.pop(STATE_KEY, None)

    if error or not code or not state or state != expected_state:
        logger.warning(f"Rejected OAuth callback (error={error!r}, state_ok={state == expected_state})")
        push_notification(request, "Discord login failed. Please try again.", level="error")
        return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)

    try:
        token = discord.exchange_code(code)
        identity = discord.fetch_identity(token)
    except DiscordAuthError as e:
        logger.warning(f"Discord login failed: {e}")
        push_notification(request, "Discord login failed. Please try again.", level="error")
        return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)

    auth.login(request, identity)
    logger.info(f"User {identity.id} logged in")
    return RedirectResponse("/dashboard", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/logout")
def logout(request: Request):
    """Forget the logged-in identity and go home."""
    auth.logout(request)
    return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
