# portal/schemas/application.py
from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel

_OPTIONAL_FIELDS = (
    "ooc_info",
    "age",
    "region",
    "experience",
    "why_apply",
    "stream",
    "backstory",
    "metagaming",
    "failrp",
    "scenario1",
    "scenario2",
    "rulebreak",
    "rules_location",
)


class ApplicationCreate(SQLModel):
    """
    Form payload posted by the whitelist application page.

    Validation is presence-only:
      - discord_id and name must be non-blank
      - everything else is optional; blank answers become None

    Backend derives:
      - id
      - submitted_at
    """

    model_config = ConfigDict(extra="ignore")

    discord_id: str
    name: str

    ooc_info: str | None = None
    age: str | None = None
    region: str | None = None
    experience: str | None = None
    why_apply: str | None = None
    stream: str | None = None
    backstory: str | None = None
    metagaming: str | None = None
    failrp: str | None = None
    scenario1: str | None = None
    scenario2: str | None = None
    rulebreak: str | None = None
    rules_location: str | None = None

    @field_validator("discord_id", "name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator(*_OPTIONAL_FIELDS)
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None
