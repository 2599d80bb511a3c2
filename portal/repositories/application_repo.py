# portal/repositories/application_repo.py
from sqlmodel import Session, select

from portal.models.application import Application


class ApplicationRepository:
    """
    Data access layer for Application.

    Responsibilities:
      - Insert and list submissions
      - No FastAPI, no HTTP, no business logic

    There is deliberately no update/delete: submissions are immutable.
    """

    def create(self, session: Session, application: Application) -> Application:
        """Insert a new Application and return the persisted row."""
        session.add(application)
        session.commit()
        session.refresh(application)
        return application

    def list_newest_first(self, session: Session) -> list[Application]:
        """
        Every submission, newest first.

        Unpaginated; fine while volume stays low.
        """
        stmt = select(Application).order_by(Application.submitted_at.desc())
        return list(session.exec(stmt).all())
