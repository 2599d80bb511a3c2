# portal/models/web_session.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class WebSession(SQLModel, table=True):
    """
    Server-side browser session.

    The cookie only carries a signed reference to `id`; everything the
    app keeps for a visitor (identity, pending notifications, OAuth
    state) lives in `data` as a JSON document.
    """

    __tablename__ = "web_sessions"

    id: str = Field(
        primary_key=True,
        max_length=64,
        description="Opaque random session id",
    )

    data: str = Field(
        default="{}",
        description="JSON-encoded session dict",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    expires_at: datetime = Field(
        index=True,
        description="Sessions past this instant are discarded on load",
    )
