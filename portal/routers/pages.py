# portal/routers/pages.py
from fastapi import APIRouter, Depends, Request

from portal.core.auth import get_current_identity, require_authenticated
from portal.core.notifications import pop_notifications
from portal.core.server_status import ServerStatusChecker, get_status_checker
from portal.core.templating import render
from portal.schemas.identity import Identity
from portal.services.page_service import PageService, get_page_service

router = APIRouter(tags=["Pages"])


# -------- Public pages --------


@router.get("/")
def index(
    request: Request,
    identity: Identity | None = Depends(get_current_identity),
    service: PageService = Depends(get_page_service),
):
    """Landing page with server status and, when logged in, whitelist state."""
    return render(request, "index.html", service.build_landing_view(identity))


@router.get("/login")
def login_page(
    request: Request,
    identity: Identity | None = Depends(get_current_identity),
):
    return render(
        request,
        "login.html",
        {"user": identity, "notifications": pop_notifications(request)},
    )


@router.get("/faq")
def faq(
    request: Request,
    identity: Identity | None = Depends(get_current_identity),
):
    return render(request, "faq.html", {"user": identity})


@router.get("/server-status")
def server_status(checker: ServerStatusChecker = Depends(get_status_checker)):
    """
    JSON polled by static/js/main.js.

    Shape: {online, players, maxPlayers, hostname}
    """
    return checker.check().model_dump(by_alias=True)


# -------- Member pages --------


@router.get("/dashboard")
def dashboard(
    request: Request,
    identity: Identity = Depends(require_authenticated),
    service: PageService = Depends(get_page_service),
):
    return render(request, "dashboard.html", service.build_member_view(request, identity))


@router.get("/rules")
def rules(
    request: Request,
    identity: Identity = Depends(require_authenticated),
    service: PageService = Depends(get_page_service),
):
    return render(request, "rules.html", service.build_member_view(request, identity))


@router.get("/applications-form")
def applications_form(
    request: Request,
    identity: Identity = Depends(require_authenticated),
    service: PageService = Depends(get_page_service),
):
    return render(request, "applications-form.html", service.build_member_view(request, identity))


@router.get("/whitelistform")
def whitelist_form(
    request: Request,
    identity: Identity = Depends(require_authenticated),
    service: PageService = Depends(get_page_service),
):
    return render(request, "whitelistform.html", service.build_member_view(request, identity))


@router.get("/application-submitted")
def application_submitted(
    request: Request,
    identity: Identity = Depends(require_authenticated),
):
    return render(
        request,
        "application-submitted.html",
        {"user": identity, "notifications": pop_notifications(request)},
    )
