"""Database models for letter of recommendation requests."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any
from sqlmodel import Field, SQLModel, Column, JSON, Relationship

if TYPE_CHECKING:
    from app.models.document import Document
    from app.models.letter import Letter
    from app.models.submission_destination import SubmissionDestination


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


# Statuses in which the student-facing surface still accepts changes
STUDENT_EDITABLE_STATUSES = (RequestStatus.PENDING, RequestStatus.SUBMITTED)


class LetterRequest(SQLModel, table=True):
    """One solicited recommendation.

    The access code is what a student types to reach this request. It is
    unique across all requests and only changes through regeneration.
    Deleting a request deletes its documents, destinations and letters.
    """

    __tablename__ = "letter_requests"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    access_code: str = Field(index=True, unique=True, max_length=16)
    code_generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    status: RequestStatus = Field(default=RequestStatus.PENDING, index=True)

    # Student-provided details
    student_name: str | None = None
    student_email: str | None = None
    student_phone: str | None = None
    program_applying: str | None = None
    institution_applying: str | None = None
    degree_type: str | None = None
    course_taken: str | None = None
    grade: str | None = None
    semester_year: str | None = None
    relationship_description: str | None = None
    achievements: str | None = None
    personal_statement: str | None = None
    additional_notes: str | None = None
    custom_fields: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    student_submitted_at: datetime | None = None

    # Professor-side fields
    deadline: datetime | None = Field(default=None, index=True)
    professor_notes: str | None = Field(default=None, max_length=5000)

    # Timestamps
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    documents: list["Document"] = Relationship(
        back_populates="request",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "Document.created_at"},
    )
    destinations: list["SubmissionDestination"] = Relationship(
        back_populates="request",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "SubmissionDestination.created_at",
        },
    )
    letters: list["Letter"] = Relationship(
        back_populates="request",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "Letter.version.desc()"},
    )
