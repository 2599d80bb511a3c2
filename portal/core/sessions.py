# portal/core/sessions.py
import json
import logging
import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from portal.database import engine
from portal.repositories.session_repo import SessionRepository

logger = logging.getLogger(__name__)

# request.scope flag: persist the session under a new id
ROTATE_KEY = "session.rotate"


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


def rotate_session(request: Request) -> None:
    """Ask the middleware to move this session to a new id (e.g. on login)."""
    request.scope[ROTATE_KEY] = True


class ServerSessionMiddleware(BaseHTTPMiddleware):
    """
    Server-side sessions behind a signed cookie.

    Flow per request:
      1. Verify the cookie (HS256 JWT carrying the session id).
      2. Load the stored dict and expose it as `request.session`.
      3. After the endpoint runs, persist the dict if it changed.

    Empty sessions are never written, and a session that becomes
    empty is deleted together with its cookie. Invalid, expired or
    unknown cookies silently start a fresh session.
    """

    def __init__(
        self,
        app: ASGIApp,
        secret_key: str,
        cookie_name: str = "portal_session",
        max_age: int = 7 * 24 * 60 * 60,
        https_only: bool = False,
        algorithm: str = "HS256",
        repo: SessionRepository | None = None,
    ):
        super().__init__(app)
        self.secret_key = secret_key
        self.cookie_name = cookie_name
        self.max_age = max_age
        self.https_only = https_only
        self.algorithm = algorithm
        self.repo = repo or SessionRepository()

    # ----- Cookie signing -----

    def sign(self, session_id: str) -> str:
        expires = datetime.now(timezone.utc) + timedelta(seconds=self.max_age)
        return jwt.encode({"sid": session_id, "exp": expires}, self.secret_key, algorithm=self.algorithm)

    def unsign(self, token: str) -> str | None:
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None
        sid = claims.get("sid")
        return sid if isinstance(sid, str) and sid else None

    # ----- Store access (sync, run in threadpool) -----

    def _load(self, session_id: str) -> dict | None:
        with Session(engine) as db:
            return self.repo.load(db, session_id)

    def _save(self, session_id: str, data: dict) -> None:
        with Session(engine) as db:
            self.repo.save(db, session_id, data, self.max_age)

    def _purge_expired(self) -> None:
        with Session(engine) as db:
            removed = self.repo.purge_expired(db)
        if removed:
            logger.info(f"Purged {removed} expired sessions")

    def _delete(self, session_id: str) -> None:
        with Session(engine) as db:
            self.repo.delete(db, session_id)

    # ----- Middleware -----

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        session_id: str | None = None
        data: dict = {}

        cookie = request.cookies.get(self.cookie_name)
        if cookie:
            session_id = self.unsign(cookie)
            if session_id is not None:
                stored = await run_in_threadpool(self._load, session_id)
                if stored is None:
                    logger.debug("Session cookie points to a missing or expired session")
                    session_id = None
                else:
                    data = stored

        snapshot = json.dumps(data, sort_keys=True)
        request.scope["session"] = data

        response = await call_next(request)

        data = request.scope["session"]
        rotate = request.scope.pop(ROTATE_KEY, False)
        if not rotate and json.dumps(data, sort_keys=True) == snapshot:
            return response

        if data:
            if rotate and session_id is not None:
                # fresh id on privilege change; the old one must stop working
                await run_in_threadpool(self._delete, session_id)
                session_id = None
            if session_id is None:
                session_id = new_session_id()
                await run_in_threadpool(self._purge_expired)
            await run_in_threadpool(self._save, session_id, data)
            response.set_cookie(
                self.cookie_name,
                self.sign(session_id),
                max_age=self.max_age,
                httponly=True,
                samesite="lax",
                secure=self.https_only,
            )
        elif session_id is not None:
            await run_in_threadpool(self._delete, session_id)
            response.delete_cookie(self.cookie_name, httponly=True, samesite="lax")

        return response
