# portal/routers/applications.py
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from portal.core.auth import require_admin
from portal.core.notifications import pop_notifications, push_notification
from portal.core.templating import render
from portal.core.webhook_client import WebhookClient, get_webhook_client
from portal.database import get_session
from portal.repositories.application_repo import ApplicationRepository
from portal.schemas.application import ApplicationCreate
from portal.schemas.identity import Identity
from portal.services.application_service import ApplicationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Applications"])

repo = ApplicationRepository()


def get_application_service(
    webhook: WebhookClient = Depends(get_webhook_client),
) -> ApplicationService:
    return ApplicationService(repo, webhook)


async def application_form(request: Request) -> ApplicationCreate:
    """Parse the url-encoded form into ApplicationCreate (422 on missing fields)."""
    form = await request.form()
    try:
        return ApplicationCreate.model_validate(dict(form))
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_context=False))


@router.post("/submit-application")
def submit_application(
    request: Request,
    payload: ApplicationCreate = Depends(application_form),
    session: Session = Depends(get_session),
    service: ApplicationService = Depends(get_application_service),
):
    """
    Store a whitelist application and mirror it to Discord.

    Auth:
      - none; the form is reachable from member pages only

    Persistence failure => 500 without redirect.
    """
    try:
        service.submit(session, payload)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Form submission failed")
        return PlainTextResponse(
            "Something went wrong!",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    push_notification(request, "Your application has been submitted.", level="success")
    return RedirectResponse("/application-submitted", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/admin")
def admin_panel(
    request: Request,
    identity: Identity = Depends(require_admin),
    session: Session = Depends(get_session),
    service: ApplicationService = Depends(get_application_service),
):
    """
    List every submission, newest first (admin only).

    No pagination.
    """
    try:
        applications = service.list_applications(session)
    except SQLAlchemyError:
        logger.exception("Error fetching applications")
        return PlainTextResponse(
            "Failed to load admin panel.",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return render(
        request,
        "admin.html",
        {
            "user": identity,
            "applications": applications,
            "notifications": pop_notifications(request),
        },
    )
