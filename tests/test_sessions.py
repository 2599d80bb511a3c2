from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

from fastapi.testclient import TestClient
from jose import jwt
from sqlmodel import Session, select

from portal.core.config import get_settings
from portal.database import engine
from portal.main import app
from portal.models.web_session import WebSession
from portal.repositories.session_repo import SessionRepository

COOKIE = get_settings().SESSION_COOKIE_NAME


def test_anonymous_visit_creates_no_session(client):
    resp = client.get("/faq")

    assert resp.status_code == 200
    assert COOKIE not in resp.cookies
    with Session(engine) as db:
        assert db.exec(select(WebSession)).all() == []


def test_login_stores_identity_server_side(client, login, make_identity):
    login(make_identity())

    cookie = client.cookies.get(COOKIE)
    assert cookie
    # the cookie only references the session; the profile stays on the server
    assert "alice" not in cookie
    with Session(engine) as db:
        rows = db.exec(select(WebSession)).all()
    assert len(rows) == 1
    assert '"alice"' in rows[0].data


def test_login_survives_a_new_app_instance(client, login, make_identity):
    login(make_identity())
    cookie = client.cookies.get(COOKIE)

    with TestClient(app) as other:
        other.cookies.set(COOKIE, cookie)
        resp = other.get("/dashboard", follow_redirects=False)

    assert resp.status_code == 200


def test_tampered_cookie_is_treated_as_anonymous(client, login, make_identity):
    login(make_identity())
    claims = jwt.decode(client.cookies.get(COOKIE), "test-secret", algorithms=["HS256"])
    forged = jwt.encode(claims, "some-other-secret", algorithm="HS256")
    client.cookies.clear()
    client.cookies.set(COOKIE, forged)

    resp = client.get("/dashboard", follow_redirects=False)

    assert resp.status_code == 303
    assert resp.headers["location"] == "/login"


def test_logout_drops_identity(client, login, make_identity):
    login(make_identity())

    resp = client.get("/logout", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/"

    resp = client.get("/dashboard", follow_redirects=False)
    assert resp.headers["location"] == "/login"
    with Session(engine) as db:
        assert db.exec(select(WebSession)).all() == []


def test_logout_without_identity_is_harmless(client):
    resp = client.get("/logout", follow_redirects=False)

    assert resp.status_code == 303
    assert resp.headers["location"] == "/"


def test_notification_is_delivered_exactly_once(client):
    # a failed OAuth callback queues an error notification
    resp = client.get("/auth/discord/callback?code=x&state=forged", follow_redirects=False)
    assert resp.headers["location"] == "/login"

    first = client.get("/login")
    second = client.get("/login")

    assert "Discord login failed" in first.text
    assert "Discord login failed" not in second.text


def test_malformed_identity_in_store_is_discarded(client, login, make_identity):
    login(make_identity())
    with Session(engine) as db:
        row = db.exec(select(WebSession)).one()
        row.data = '{"identity": {"username": "no-id"}}'
        db.add(row)
        db.commit()

    resp = client.get("/dashboard", follow_redirects=False)

    assert resp.status_code == 303
    assert resp.headers["location"] == "/login"


def test_repository_discards_expired_sessions():
    repo = SessionRepository()
    with Session(engine) as db:
        repo.save(db, "sid-1", {"identity": {"id": "1"}}, max_age_seconds=60)
        row = db.get(WebSession, "sid-1")
        row.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
        db.add(row)
        db.commit()

        assert repo.load(db, "sid-1") is None
        assert db.get(WebSession, "sid-1") is None


def test_repository_save_overwrites_existing():
    repo = SessionRepository()
    with Session(engine) as db:
        repo.save(db, "sid-1", {"a": 1}, max_age_seconds=60)
        repo.save(db, "sid-1", {"b": 2}, max_age_seconds=60)

        assert repo.load(db, "sid-1") == {"b": 2}


def _expire_all_sessions():
    past = datetime.now(timezone.utc) - timedelta(seconds=1)
    with Session(engine) as db:
        for row in db.exec(select(WebSession)).all():
            row.expires_at = past
            db.add(row)
        db.commit()


def test_login_moves_session_to_a_new_id(client, discord, make_identity):
    identity = make_identity()
    discord.identities["code-1"] = identity

    start = client.get("/auth/discord", follow_redirects=False)
    state = parse_qs(urlparse(start.headers["location"]).query)["state"][0]
    before = jwt.decode(client.cookies.get(COOKIE), "test-secret", algorithms=["HS256"])["sid"]

    client.get(
        "/auth/discord/callback",
        params={"code": "code-1", "state": state},
        follow_redirects=False,
    )
    after = jwt.decode(client.cookies.get(COOKIE), "test-secret", algorithms=["HS256"])["sid"]

    assert after != before
    with Session(engine) as db:
        assert db.get(WebSession, before) is None
        assert db.get(WebSession, after) is not None


def test_pre_login_cookie_does_not_grant_access(client, discord, make_identity):
    discord.identities["code-1"] = make_identity()

    start = client.get("/auth/discord", follow_redirects=False)
    state = parse_qs(urlparse(start.headers["location"]).query)["state"][0]
    planted = client.cookies.get(COOKIE)
    client.get(
        "/auth/discord/callback",
        params={"code": "code-1", "state": state},
        follow_redirects=False,
    )

    with TestClient(app) as attacker:
        attacker.cookies.set(COOKIE, planted)
        resp = attacker.get("/dashboard", follow_redirects=False)

    assert resp.status_code == 303
    assert resp.headers["location"] == "/login"


def test_new_sessions_purge_expired_rows(client):
    for _ in range(25):
        client.cookies.clear()
        client.get("/auth/discord", follow_redirects=False)
    _expire_all_sessions()

    for _ in range(5):
        client.cookies.clear()
        client.get("/auth/discord", follow_redirects=False)

    with Session(engine) as db:
        assert len(db.exec(select(WebSession)).all()) == 5


def test_startup_purges_expired_sessions():
    repo = SessionRepository()
    with Session(engine) as db:
        repo.save(db, "old", {"a": 1}, max_age_seconds=60)
    _expire_all_sessions()

    with TestClient(app):
        pass

    with Session(engine) as db:
        assert db.get(WebSession, "old") is None


def test_repository_purge_keeps_live_sessions():
    repo = SessionRepository()
    with Session(engine) as db:
        repo.save(db, "stale", {"a": 1}, max_age_seconds=60)
    _expire_all_sessions()
    with Session(engine) as db:
        repo.save(db, "live", {"b": 2}, max_age_seconds=60)

        assert repo.purge_expired(db) == 1
        assert db.get(WebSession, "stale") is None
        assert repo.load(db, "live") == {"b": 2}
