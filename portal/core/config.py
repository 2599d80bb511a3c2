# portal/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - SESSION_SECRET (signs the session cookie)
      - DISCORD_CLIENT_ID / DISCORD_CLIENT_SECRET (OAuth2 application)
      - BOT_TOKEN (bot used for guild member lookups)
      - TARGET_GUILD_ID (the community guild)

    Optional:
      - WHITELIST_ROLE_ID, QUEUE_PRIORITY_*_ID (role classification)
      - ADMIN_DISCORD_ID (single admin user, nobody is admin when unset)
      - FIVEM_SERVER_IP (host:port, status is always offline when unset)
      - NOTIFICATION_WEBHOOK_URL (Discord webhook for new applications)
    """

    PROJECT_NAME: str = "Whitelist Portal"
    PORT: int = 3000

    # Document store (SQLModel engine URL)
    DATABASE_URL: str = "sqlite:///./portal.db"

    # Server-side sessions
    SESSION_SECRET: str
    SESSION_COOKIE_NAME: str = "portal_session"
    SESSION_MAX_AGE_SECONDS: int = 7 * 24 * 60 * 60
    SESSION_HTTPS_ONLY: bool = False
    SESSION_JWT_ALG: str = "HS256"

    # Discord OAuth2 + bot API
    DISCORD_CLIENT_ID: str
    DISCORD_CLIENT_SECRET: str
    DISCORD_CALLBACK_URL: str = "http://localhost:3000/auth/discord/callback"
    DISCORD_API_BASE: str = "https://discord.com/api/v10"
    BOT_TOKEN: str
    TARGET_GUILD_ID: str

    # Roles
    WHITELIST_ROLE_ID: str | None = None
    QUEUE_PRIORITY_PLATINUM_ID: str | None = None
    QUEUE_PRIORITY_GOLD_ID: str | None = None
    QUEUE_PRIORITY_SILVER_ID: str | None = None
    QUEUE_PRIORITY_BRONZE_ID: str | None = None
    ADMIN_DISCORD_ID: str | None = None

    # Game server + notifications
    FIVEM_SERVER_IP: str | None = None
    NOTIFICATION_WEBHOOK_URL: str | None = None

    # Outbound call limits (seconds)
    HTTP_TIMEOUT_SECONDS: float = 5.0
    SERVER_STATUS_TIMEOUT_SECONDS: float = 2.0

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
