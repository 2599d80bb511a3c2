# portal/services/application_service.py
import logging

from sqlmodel import Session

from portal.core.webhook_client import WebhookClient
from portal.models.application import Application
from portal.repositories.application_repo import ApplicationRepository
from portal.schemas.application import ApplicationCreate

logger = logging.getLogger(__name__)


class ApplicationService:
    """
    Business logic for whitelist applications.

    Responsibilities:
      - build the row from the form payload (server-assigned timestamp)
      - persist it; this is the durability boundary
      - mirror it to the Discord webhook, best-effort
      - list submissions for the admin panel
    """

    def __init__(self, repo: ApplicationRepository, webhook: WebhookClient):
        self.repo = repo
        self.webhook = webhook

    def submit(self, session: Session, payload: ApplicationCreate) -> Application:
        """
        Persist a submission, then notify.

        Raises:
            SQLAlchemyError: if the insert fails; nothing is sent.

        A failed notification is logged and never undoes the insert.
        """
        application = Application(
            discord_id=payload.discord_id,
            discord_name=payload.name,
            ooc_info=payload.ooc_info,
            age=payload.age,
            region=payload.region,
            experience=payload.experience,
            why_apply=payload.why_apply,
            stream=payload.stream,
            backstory=payload.backstory,
            metagaming=payload.metagaming,
            failrp=payload.failrp,
            scenario1=payload.scenario1,
            scenario2=payload.scenario2,
            rulebreak=payload.rulebreak,
            rules_location=payload.rules_location,
        )
        application = self.repo.create(session, application)
        logger.info(f"Application {application.id} stored for {application.discord_id}")

        try:
            self.webhook.send_application(application)
        except Exception as e:
            logger.warning(f"Webhook notification for {application.id} failed: {e}")

        return application

    def list_applications(self, session: Session) -> list[Application]:
        """All submissions, newest first (admin only)."""
        return self.repo.list_newest_first(session)
