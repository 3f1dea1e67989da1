"""Database models for student-uploaded documents."""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from sqlmodel import Field, SQLModel, Relationship

if TYPE_CHECKING:
    from app.models.letter_request import LetterRequest


class Document(SQLModel, table=True):
    __tablename__ = "documents"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    request_id: uuid.UUID = Field(foreign_key="letter_requests.id", ondelete="CASCADE", index=True)

    original_name: str
    stored_name: str  # random token + extension, never the original name
    mime_type: str
    size: int
    path: str
    label: str | None = None
    description: str | None = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    request: "LetterRequest" = Relationship(back_populates="documents")
