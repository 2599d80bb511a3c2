# portal/models/application.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Application(SQLModel, table=True):
    """
    Whitelist application submitted through the portal.

    Identity:
      - id: generated server-side
      - discord_id / discord_name: as typed into the form

    Rows are immutable once inserted; there is no update or delete
    path. `submitted_at` is assigned by the server at insert time and
    drives the admin listing order.
    """

    __tablename__ = "applications"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    discord_id: str = Field(
        index=True,
        description="Discord user id of the applicant",
    )
    discord_name: str = Field(
        description="Discord display name of the applicant",
    )

    # Out-of-character details
    ooc_info: str | None = Field(default=None)
    age: str | None = Field(default=None)
    region: str | None = Field(default=None)
    experience: str | None = Field(default=None)
    why_apply: str | None = Field(default=None)
    stream: str | None = Field(default=None)

    # In-character + rules knowledge
    backstory: str | None = Field(default=None)
    metagaming: str | None = Field(default=None)
    failrp: str | None = Field(default=None)
    scenario1: str | None = Field(default=None)
    scenario2: str | None = Field(default=None)
    rulebreak: str | None = Field(default=None)
    rules_location: str | None = Field(default=None)

    submitted_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Submission timestamp (UTC)",
    )
