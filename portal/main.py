# portal/main.py
from contextlib import asynccontextmanager
import logging
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from portal.core.auth import LoginRequired, get_current_identity
from portal.core.config import get_settings
from portal.core.sessions import ServerSessionMiddleware
from portal.core.templating import render
from portal.database import create_db_and_tables, engine
from portal.repositories.session_repo import SessionRepository

# Import models so SQLModel metadata is populated before create_all()
from portal.models import application as _application_models  # noqa: F401
from portal.models import web_session as _web_session_models  # noqa: F401

# Routers
from portal.routers.auth import router as auth_router
from portal.routers.pages import router as pages_router
from portal.routers.applications import router as applications_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")

STATIC_DIR = Path(__file__).resolve().parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
      - Drop expired web sessions.

    Shutdown:
      - No special cleanup needed for sync engine.
    """
    logger.info("🔄 Startup: Connecting to document store...")
    try:
        create_db_and_tables()
        logger.info("✅ Startup: DB connection OK, tables verified.")
        with Session(engine) as db:
            purged = SessionRepository().purge_expired(db)
        logger.info(f"🧹 Startup: purged {purged} expired sessions.")
    except Exception as e:
        logger.error(f"❌ Startup: DB connection FAILED: {e}")
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
)

app.add_middleware(
    ServerSessionMiddleware,
    secret_key=settings.SESSION_SECRET,
    cookie_name=settings.SESSION_COOKIE_NAME,
    max_age=settings.SESSION_MAX_AGE_SECONDS,
    https_only=settings.SESSION_HTTPS_ONLY,
    algorithm=settings.SESSION_JWT_ALG,
)

app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

app.include_router(auth_router)
app.include_router(pages_router)
app.include_router(applications_router)


# --- Error pages ---


@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired):
    return RedirectResponse("/login", status_code=303)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """404 => rendered page; anything else => short plain-text body."""
    if exc.status_code == 404:
        return render(
            request,
            "404.html",
            {"user": get_current_identity(request)},
            status_code=404,
        )
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code)


def run() -> None:
    """Console entry point: serve the portal on PORT."""
    uvicorn.run("portal.main:app", host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
