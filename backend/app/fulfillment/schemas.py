"""Input models for fulfillment operations.

Update models are patches: a field the caller did not send is left alone,
a field sent as null is cleared, and a field sent with a value is set.
``apply_patch`` relies on pydantic's ``model_fields_set`` to tell the
first two apart.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator
from sqlmodel import SQLModel

from app.models.letter_request import RequestStatus
from app.models.submission_destination import SubmissionMethod

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
MAX_PROFESSOR_NOTES = 5000


def apply_patch(target: SQLModel, patch: BaseModel) -> set[str]:
    """Copy explicitly supplied fields from ``patch`` onto ``target``.

    Returns:
        Names of the fields that were written
    """
    changes = patch.model_dump(exclude_unset=True)
    for field_name, value in changes.items():
        setattr(target, field_name, value)
    return set(changes)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# --- Requests -------------------------------------------------------------


class RequestCreate(BaseModel):
    deadline: datetime | None = None
    professor_notes: str | None = Field(None, max_length=MAX_PROFESSOR_NOTES)


class RequestUpdate(BaseModel):
    """Patch for a request. ``deadline`` and ``professor_notes`` may be cleared with null."""
    deadline: datetime | None = None
    professor_notes: str | None = Field(None, max_length=MAX_PROFESSOR_NOTES)
    status: RequestStatus | None = None

    @field_validator("status")
    @classmethod
    def status_not_null(cls, value: RequestStatus | None) -> RequestStatus:
        if value is None:
            raise ValueError("status cannot be cleared")
        return value


class StatusUpdate(BaseModel):
    status: RequestStatus


# --- Student-facing -------------------------------------------------------


class StudentInfo(BaseModel):
    student_name: str = Field(..., min_length=1)
    student_email: str = Field(..., pattern=EMAIL_PATTERN)
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
    custom_fields: dict[str, Any] | None = None

    @field_validator(
        "student_phone",
        "program_applying",
        "institution_applying",
        "degree_type",
        "course_taken",
        "grade",
        "semester_year",
        "relationship_description",
        "achievements",
        "personal_statement",
        "additional_notes",
        mode="before",
    )
    @classmethod
    def blank_is_none(cls, value: Any) -> Any:
        return _blank_to_none(value)


class DestinationInput(BaseModel):
    institution_name: str = Field(..., min_length=1)
    program_name: str | None = None
    recipient_name: str | None = None
    recipient_email: str | None = Field(None, pattern=EMAIL_PATTERN)
    portal_url: str | None = Field(None, pattern=r"^https?://\S+$")
    portal_instructions: str | None = None
    method: SubmissionMethod
    deadline: datetime | None = None

    @field_validator(
        "program_name",
        "recipient_name",
        "recipient_email",
        "portal_url",
        "portal_instructions",
        mode="before",
    )
    @classmethod
    def blank_is_none(cls, value: Any) -> Any:
        return _blank_to_none(value)


# --- Templates ------------------------------------------------------------


class TemplateVariable(BaseModel):
    name: str = Field(..., min_length=1)
    description: str | None = None
    category: str | None = None


class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str | None = None
    content: str = Field(..., min_length=1)
    variables: list[TemplateVariable] = Field(default_factory=list)
    category: str | None = None
    is_default: bool = False


class TemplateUpdate(BaseModel):
    name: str | None = Field(None, min_length=1)
    description: str | None = None
    content: str | None = Field(None, min_length=1)
    variables: list[TemplateVariable] | None = None
    category: str | None = None
    is_active: bool | None = None
    is_default: bool | None = None

    @field_validator("name", "content", "variables", "is_active", "is_default")
    @classmethod
    def required_not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("field cannot be cleared")
        return value


class TemplatePreview(BaseModel):
    content: str
    variables: dict[str, str | None] | None = None


# --- Letters --------------------------------------------------------------


class LetterGenerate(BaseModel):
    request_id: uuid.UUID
    template_id: uuid.UUID


class LetterUpdate(BaseModel):
    content: str = Field(..., min_length=1)


class SendLetter(BaseModel):
    letter_id: uuid.UUID


# --- Professor ------------------------------------------------------------


class ProfessorUpdate(BaseModel):
    email: str | None = Field(None, pattern=EMAIL_PATTERN)
    name: str | None = Field(None, min_length=1)
    title: str | None = None
    department: str | None = None
    institution: str | None = None
    signature: str | None = None

    @field_validator("email", "name")
    @classmethod
    def required_not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("field cannot be cleared")
        return value
