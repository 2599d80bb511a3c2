import os
from urllib.parse import parse_qs, urlparse

# Settings are read once at import time; configure before importing the app.
os.environ.update(
    {
        "DATABASE_URL": "sqlite://",
        "SESSION_SECRET": "test-secret",
        "DISCORD_CLIENT_ID": "client-id",
        "DISCORD_CLIENT_SECRET": "client-secret",
        "BOT_TOKEN": "bot-token",
        "TARGET_GUILD_ID": "guild-1",
        "WHITELIST_ROLE_ID": "role-wl",
        "QUEUE_PRIORITY_PLATINUM_ID": "role-platinum",
        "QUEUE_PRIORITY_GOLD_ID": "role-gold",
        "QUEUE_PRIORITY_SILVER_ID": "role-silver",
        "QUEUE_PRIORITY_BRONZE_ID": "role-bronze",
        "ADMIN_DISCORD_ID": "admin-1",
    }
)
os.environ.pop("FIVEM_SERVER_IP", None)
os.environ.pop("NOTIFICATION_WEBHOOK_URL", None)

import pytest  # noqa: E402
import requests  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from portal.core.discord_client import DiscordAuthError, get_discord_client  # noqa: E402
from portal.core.server_status import ServerStatus, get_status_checker  # noqa: E402
from portal.core.webhook_client import get_webhook_client  # noqa: E402
from portal.database import engine  # noqa: E402
from portal.main import app  # noqa: E402
from portal.schemas.identity import GuildSummary, Identity, MembershipRecord  # noqa: E402


class FakeDiscord:
    """Stands in for DiscordClient; configure roles/identities per test."""

    def __init__(self):
        self.roles: dict[str, list[str]] = {}
        self.member_count: int | None = 42
        self.identities: dict[str, Identity] = {}
        self.fail_lookups = False

    def get_guild_member(self, user_id):
        if self.fail_lookups:
            raise RuntimeError("discord is down")
        if user_id not in self.roles:
            return None
        return MembershipRecord(user_id=user_id, roles=self.roles[user_id])

    def get_member_count(self):
        if self.fail_lookups:
            raise RuntimeError("discord is down")
        return self.member_count

    def authorize_url(self, state):
        return f"https://discord.test/oauth2/authorize?state={state}"

    def exchange_code(self, code):
        if code not in self.identities:
            raise DiscordAuthError("bad code")
        return f"token-{code}"

    def fetch_identity(self, access_token):
        return self.identities[access_token[len("token-"):]]


class FakeStatusChecker:
    def __init__(self):
        self.status = ServerStatus(online=True, players=12, max_players=64, hostname="Test City RP")

    def check(self):
        return self.status


class FakeWebhook:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send_application(self, application):
        if self.fail:
            raise requests.ConnectionError("webhook unreachable")
        self.sent.append(application)
        return True


@pytest.fixture(autouse=True)
def reset_db():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture
def discord():
    return FakeDiscord()


@pytest.fixture
def status_checker():
    return FakeStatusChecker()


@pytest.fixture
def webhook():
    return FakeWebhook()


@pytest.fixture
def client(discord, status_checker, webhook):
    app.dependency_overrides[get_discord_client] = lambda: discord
    app.dependency_overrides[get_status_checker] = lambda: status_checker
    app.dependency_overrides[get_webhook_client] = lambda: webhook
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _make_identity(user_id="user-1", username="alice", guild_ids=("guild-1",)):
    return Identity(
        id=user_id,
        username=username,
        guilds=[GuildSummary(id=g, name="Test City") for g in guild_ids],
        access_token="secret-token",
    )


@pytest.fixture
def make_identity():
    return _make_identity


@pytest.fixture
def login(client, discord):
    """Log `identity` in through the OAuth round trip against the fake Discord client."""

    def _login(identity):
        return _login_as(client, discord, identity)

    return _login


def _login_as(client, discord, identity):
    code = f"code-{identity.id}"
    discord.identities[code] = identity

    start = client.get("/auth/discord", follow_redirects=False)
    assert start.status_code == 303
    state = parse_qs(urlparse(start.headers["location"]).query)["state"][0]

    callback = client.get(
        "/auth/discord/callback",
        params={"code": code, "state": state},
        follow_redirects=False,
    )
    assert callback.status_code == 303
    assert callback.headers["location"] == "/dashboard"
    return identity
