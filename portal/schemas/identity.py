# portal/schemas/identity.py
from typing import Any

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel


class GuildSummary(SQLModel):
    """A guild the user belongs to, as listed by /users/@me/guilds."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    icon: str | None = None


class Identity(SQLModel):
    """
    Logged-in Discord user, held in the server-side session.

    Built field by field from the OAuth profile; unknown keys are
    dropped and missing required keys are rejected, so a malformed
    session payload can never masquerade as a user.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    username: str
    global_name: str | None = None
    avatar: str | None = None
    guilds: list[GuildSummary] = []
    access_token: str | None = None

    @field_validator("id", "username")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @property
    def display_name(self) -> str:
        return self.global_name or self.username

    @classmethod
    def from_discord(
        cls,
        profile: dict[str, Any],
        guilds: list[dict[str, Any]],
        access_token: str | None = None,
    ) -> "Identity":
        """
        Map Discord's `/users/@me` and `/users/@me/guilds` payloads.

        Raises:
            ValueError: if the payloads don't have the expected shape.
        """
        if not isinstance(profile, dict) or not isinstance(guilds, list):
            raise ValueError("Unexpected Discord profile payload")

        return cls.model_validate(
            {
                "id": profile.get("id"),
                "username": profile.get("username"),
                "global_name": profile.get("global_name"),
                "avatar": profile.get("avatar"),
                "guilds": [
                    {"id": g.get("id"), "name": g.get("name") or "", "icon": g.get("icon")}
                    for g in guilds
                    if isinstance(g, dict)
                ],
                "access_token": access_token,
            }
        )

    def find_guild(self, guild_id: str) -> GuildSummary | None:
        """Return this user's entry for `guild_id`, if they are in it."""
        for guild in self.guilds:
            if guild.id == guild_id:
                return guild
        return None


class MembershipRecord(SQLModel):
    """Live guild membership of a user; fetched per request, never stored."""

    user_id: str
    roles: list[str] = []
