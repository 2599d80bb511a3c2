# portal/core/webhook_client.py
from __future__ import annotations

"""
Discord webhook notifications for the portal.

Responsibilities:
  - Build the "new application" embed from a persisted Application.
  - POST it to NOTIFICATION_WEBHOOK_URL.

Callers treat this as fire-and-forget: send_application raises on
failure and the service layer decides to log and move on.
"""

import logging
from functools import lru_cache

import requests

from portal.core.config import Settings, get_settings
from portal.models.application import Application

logger = logging.getLogger(__name__)

EMBED_TITLE = "📜 New Application Submitted"
EMBED_COLOR = 0x5865F2  # Discord blurple

# Discord rejects embed field values longer than this
FIELD_VALUE_LIMIT = 1024


def _field(name: str, value: str | None, inline: bool = False) -> dict:
    text = (value or "N/A")[:FIELD_VALUE_LIMIT]
    return {"name": name, "value": text, "inline": inline}


def build_application_embed(application: Application) -> dict:
    """
    Summarize an application as a Discord embed.

    Only the short answers are included; long-form answers
    (backstory, scenarios) stay in the admin panel.
    """
    return {
        "title": EMBED_TITLE,
        "color": EMBED_COLOR,
        "fields": [
            _field("Discord ID", application.discord_id, inline=True),
            _field("Name", application.discord_name, inline=True),
            _field("Age", application.age, inline=True),
            _field("Region", application.region, inline=True),
            _field("Experience", application.experience),
            _field("Why Apply", application.why_apply),
            _field("Stream", application.stream),
            _field("Metagaming", application.metagaming),
            _field("FailRP", application.failrp),
            _field("Rules Location", application.rules_location),
        ],
        "timestamp": application.submitted_at.isoformat(),
    }


class WebhookClient:
    def __init__(self, settings: Settings, http: requests.Session | None = None):
        self.url = settings.NOTIFICATION_WEBHOOK_URL
        self.timeout = settings.HTTP_TIMEOUT_SECONDS
        self.http = http or requests.Session()

    def send_application(self, application: Application) -> bool:
        """
        Post the embed for `application`.

        Returns:
            False if no webhook is configured, True once delivered.

        Raises:
            requests.RequestException: if the POST fails or Discord
            answers with a non-2xx status.
        """
        if not self.url:
            logger.info("NOTIFICATION_WEBHOOK_URL not set; skipping notification")
            return False

        resp = self.http.post(
            self.url,
            json={"embeds": [build_application_embed(application)]},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return True


@lru_cache
def get_webhook_client() -> WebhookClient:
    """FastAPI dependency returning the shared webhook client."""
    return WebhookClient(get_settings())
