"""Database models for submission destinations."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING
from sqlmodel import Field, SQLModel, Relationship

if TYPE_CHECKING:
    from app.models.letter import Letter
    from app.models.letter_request import LetterRequest


class SubmissionMethod(str, Enum):
    EMAIL = "EMAIL"
    DOWNLOAD = "DOWNLOAD"
    PORTAL = "PORTAL"


class SubmissionStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"


class SubmissionDestination(SQLModel, table=True):
    """One place the finished letter has to reach.

    Status moves forward only (PENDING -> SENT -> CONFIRMED, or to FAILED)
    unless explicitly reset; see app.fulfillment.destinations.
    """

    __tablename__ = "submission_destinations"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    request_id: uuid.UUID = Field(foreign_key="letter_requests.id", ondelete="CASCADE", index=True)

    institution_name: str
    program_name: str | None = None
    recipient_name: str | None = None
    recipient_email: str | None = None
    portal_url: str | None = None
    portal_instructions: str | None = None

    method: SubmissionMethod
    status: SubmissionStatus = Field(default=SubmissionStatus.PENDING, index=True)
    deadline: datetime | None = None

    sent_at: datetime | None = None
    confirmed_at: datetime | None = None
    failure_reason: str | None = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    request: "LetterRequest" = Relationship(back_populates="destinations")
    letters: list["Letter"] = Relationship(
        back_populates="destination",
        sa_relationship_kwargs={"cascade": "all, delete"},
    )
