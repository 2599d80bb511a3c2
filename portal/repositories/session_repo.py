# portal/repositories/session_repo.py
import json
from datetime import datetime, timedelta, timezone

from sqlmodel import Session, delete

from portal.models.web_session import WebSession


def _as_utc(value: datetime) -> datetime:
    # SQLite hands datetimes back without tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SessionRepository:
    """
    Data access layer for WebSession rows.

    Session payloads are stored as JSON text and returned as plain dicts.
    """

    def load(self, session: Session, session_id: str) -> dict | None:
        """
        Return the stored dict for `session_id`.

        Missing or expired rows yield None; expired rows are removed.
        """
        row = session.get(WebSession, session_id)
        if row is None:
            return None

        if _as_utc(row.expires_at) <= datetime.now(timezone.utc):
            session.delete(row)
            session.commit()
            return None

        try:
            data = json.loads(row.data or "{}")
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    def save(
        self,
        session: Session,
        session_id: str,
        data: dict,
        max_age_seconds: int,
    ) -> WebSession:
        """Insert or overwrite a session and push its expiry forward."""
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=max_age_seconds)
        row = session.get(WebSession, session_id)
        if row is None:
            row = WebSession(id=session_id, expires_at=expires_at)
        row.data = json.dumps(data)
        row.expires_at = expires_at
        session.add(row)
        session.commit()
        session.refresh(row)
        return row

    def purge_expired(self, session: Session) -> int:
        """
        Delete every session past its expiry.

        Returns:
            Number of rows removed.
        """
        # stored values are UTC without tzinfo on SQLite
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        result = session.exec(delete(WebSession).where(WebSession.expires_at <= now))
        session.commit()
        return result.rowcount or 0

    def delete(self, session: Session, session_id: str) -> None:
        """Remove a session; no-op if it does not exist."""
        row = session.get(WebSession, session_id)
        if row is not None:
            session.delete(row)
            session.commit()
