# portal/core/discord_client.py
import logging
from functools import lru_cache
from urllib.parse import urlencode

import requests

from portal.core.config import Settings, get_settings
from portal.schemas.identity import Identity, MembershipRecord

logger = logging.getLogger(__name__)

OAUTH_SCOPES = ("identify", "guilds", "email")
AUTHORIZE_URL = "https://discord.com/oauth2/authorize"


class DiscordAuthError(Exception):
    """Raised when any step of the OAuth2 code exchange fails."""


class DiscordClient:
    """
    Thin wrapper over the Discord REST API.

    Two kinds of calls live here:
      - bot calls (member lookup, member count): best-effort, return
        None on any failure so pages can degrade
      - OAuth2 calls (code exchange, profile): raise DiscordAuthError,
        the callback route turns that into a redirect to /login

    Every request is a single attempt bounded by HTTP_TIMEOUT_SECONDS.
    """

    def __init__(self, settings: Settings, http: requests.Session | None = None):
        self.settings = settings
        self.http = http or requests.Session()
        self.api = settings.DISCORD_API_BASE.rstrip("/")
        self.timeout = settings.HTTP_TIMEOUT_SECONDS

    # ----- Bot API -----

    def _bot_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bot {self.settings.BOT_TOKEN}"}

    def get_guild_member(self, user_id: str) -> MembershipRecord | None:
        """
        Fetch the target-guild member record for `user_id`.

        Returns:
            MembershipRecord, or None if the user is not a member or the
            lookup failed for any reason.
        """
        url = f"{self.api}/guilds/{self.settings.TARGET_GUILD_ID}/members/{user_id}"
        try:
            resp = self.http.get(url, headers=self._bot_headers(), timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
            roles = body.get("roles") or []
            return MembershipRecord(user_id=user_id, roles=[str(r) for r in roles])
        except (requests.RequestException, ValueError, AttributeError) as e:
            logger.warning(f"Error fetching guild member {user_id}: {e}")
            return None

    def get_member_count(self) -> int | None:
        """Approximate member count of the target guild, or None on failure."""
        url = f"{self.api}/guilds/{self.settings.TARGET_GUILD_ID}"
        try:
            resp = self.http.get(
                url,
                headers=self._bot_headers(),
                params={"with_counts": "true"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return int(resp.json()["approximate_member_count"])
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Error fetching member count: {e}")
            return None

    # ----- OAuth2 -----

    def authorize_url(self, state: str) -> str:
        """URL that starts the Discord consent screen."""
        params = {
            "client_id": self.settings.DISCORD_CLIENT_ID,
            "redirect_uri": self.settings.DISCORD_CALLBACK_URL,
            "response_type": "code",
            "scope": " ".join(OAUTH_SCOPES),
            "state": state,
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> str:
        """
        Trade an authorization code for an access token.

        Raises:
            DiscordAuthError: on any HTTP or payload failure.
        """
        try:
            resp = self.http.post(
                f"{self.api}/oauth2/token",
                data={
                    "client_id": self.settings.DISCORD_CLIENT_ID,
                    "client_secret": self.settings.DISCORD_CLIENT_SECRET,
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.settings.DISCORD_CALLBACK_URL,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            token = resp.json().get("access_token")
        except (requests.RequestException, ValueError, AttributeError) as e:
            raise DiscordAuthError(f"Token exchange failed: {e}") from e

        if not token:
            raise DiscordAuthError("Token exchange returned no access_token")
        return token

    def fetch_identity(self, access_token: str) -> Identity:
        """
        Load the user's profile and guild list with their access token.

        Raises:
            DiscordAuthError: on HTTP failure or an unexpected payload shape.
        """
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            me = self.http.get(f"{self.api}/users/@me", headers=headers, timeout=self.timeout)
            me.raise_for_status()
            guilds = self.http.get(
                f"{self.api}/users/@me/guilds", headers=headers, timeout=self.timeout
            )
            guilds.raise_for_status()
            return Identity.from_discord(me.json(), guilds.json(), access_token)
        except (requests.RequestException, ValueError) as e:
            raise DiscordAuthError(f"Profile fetch failed: {e}") from e


@lru_cache
def get_discord_client() -> DiscordClient:
    """
    FastAPI dependency returning the shared DiscordClient.

    Overridden in tests via app.dependency_overrides.
    """
    return DiscordClient(get_settings())
