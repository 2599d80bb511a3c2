# portal/core/server_status.py
import logging
from functools import lru_cache

import requests
from pydantic import BaseModel, ConfigDict, Field

from portal.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

DEFAULT_HOSTNAME = "FiveM Server"


class ServerStatus(BaseModel):
    """
    Snapshot of the game server, serialized for the status poller as
    {online, players, maxPlayers, hostname}.
    """

    model_config = ConfigDict(populate_by_name=True)

    online: bool = False
    players: int = 0
    max_players: int = Field(default=0, alias="maxPlayers")
    hostname: str = DEFAULT_HOSTNAME


OFFLINE = ServerStatus()


class ServerStatusChecker:
    """
    Reads the FiveM `info.json` endpoint.

    Any failure (unset address, timeout, bad JSON) reports offline.
    """

    def __init__(self, settings: Settings, http: requests.Session | None = None):
        self.address = settings.FIVEM_SERVER_IP
        self.timeout = settings.SERVER_STATUS_TIMEOUT_SECONDS
        self.http = http or requests.Session()

    def check(self) -> ServerStatus:
        if not self.address:
            return OFFLINE

        try:
            resp = self.http.get(f"http://{self.address}/info.json", timeout=self.timeout)
            resp.raise_for_status()
            info = resp.json()
            variables = info.get("vars") or {}
            return ServerStatus(
                online=True,
                players=int(info.get("clients") or 0),
                max_players=int(
                    info.get("sv_maxclients") or variables.get("sv_maxClients") or 0
                ),
                hostname=info.get("hostname") or variables.get("sv_projectName") or DEFAULT_HOSTNAME,
            )
        except (requests.RequestException, ValueError, AttributeError, TypeError) as e:
            logger.info(f"Game server status check failed: {e}")
            return OFFLINE


@lru_cache
def get_status_checker() -> ServerStatusChecker:
    """FastAPI dependency returning the shared status checker."""
    return ServerStatusChecker(get_settings())
