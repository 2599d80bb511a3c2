# portal/services/page_service.py
import logging
from functools import lru_cache
from typing import Any

from fastapi import Depends, Request

from portal.core.config import get_settings
from portal.core.discord_client import DiscordClient, get_discord_client
from portal.core.notifications import pop_notifications
from portal.core.server_status import OFFLINE, ServerStatusChecker, get_status_checker
from portal.schemas.identity import Identity
from portal.services.role_classifier import RoleClassification, RoleConfig, classify_roles

logger = logging.getLogger(__name__)


class PageService:
    """
    Assembles the view data shared by the member pages.

    Responsibilities:
      - look up the member's guild roles and classify them
      - fetch the guild member count and the game server status
      - find the target guild in the user's own guild list
      - hand over pending notifications (consumed here)

    Each lookup degrades on its own: a failure is logged and replaced
    by a default so the page always renders. Lookups run one after
    another.
    """

    def __init__(
        self,
        discord: DiscordClient,
        status_checker: ServerStatusChecker,
        role_config: RoleConfig,
        target_guild_id: str,
    ):
        self.discord = discord
        self.status_checker = status_checker
        self.role_config = role_config
        self.target_guild_id = target_guild_id

    def classify(self, identity: Identity) -> RoleClassification:
        """Whitelist flag + tier for `identity`; unknown membership => neither."""
        try:
            member = self.discord.get_guild_member(identity.id)
        except Exception:
            logger.exception("Member lookup crashed")
            member = None
        return classify_roles(member.roles if member else None, self.role_config)

    def member_count(self) -> int:
        try:
            count = self.discord.get_member_count()
        except Exception:
            logger.exception("Member count lookup crashed")
            count = None
        return count or 0

    def server_status(self):
        try:
            return self.status_checker.check()
        except Exception:
            logger.exception("Server status check crashed")
            return OFFLINE

    def build_member_view(self, request: Request, identity: Identity) -> dict[str, Any]:
        """
        Context for dashboard / rules / applications-form / whitelistform.

        Defaults when a lookup fails:
          - is_whitelisted=False, user_priority=None
          - member_count=0
          - server_status offline
          - server=None
        """
        roles = self.classify(identity)
        member_count = self.member_count()
        server_status = self.server_status()
        server = identity.find_guild(self.target_guild_id)

        return {
            "user": identity,
            "server": server,
            "is_whitelisted": roles.is_whitelisted,
            "user_priority": roles.tier,
            "member_count": member_count,
            "server_status": server_status,
            "notifications": pop_notifications(request),
        }

    def build_landing_view(self, identity: Identity | None) -> dict[str, Any]:
        """Context for `/`: server status always, whitelist flag when logged in."""
        is_whitelisted = False
        if identity is not None:
            is_whitelisted = self.classify(identity).is_whitelisted

        return {
            "user": identity,
            "is_whitelisted": is_whitelisted,
            "server_status": self.server_status(),
        }


@lru_cache
def get_role_config() -> RoleConfig:
    """Role table built once from settings."""
    return RoleConfig.from_settings(get_settings())


def get_page_service(
    discord: DiscordClient = Depends(get_discord_client),
    status_checker: ServerStatusChecker = Depends(get_status_checker),
) -> PageService:
    """FastAPI dependency wiring PageService with its collaborators."""
    settings = get_settings()
    return PageService(
        discord=discord,
        status_checker=status_checker,
        role_config=get_role_config(),
        target_guild_id=settings.TARGET_GUILD_ID,
    )
