"""Database models for generated letters."""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional
from sqlmodel import Field, SQLModel, Relationship

if TYPE_CHECKING:
    from app.models.letter_request import LetterRequest
    from app.models.submission_destination import SubmissionDestination


class Letter(SQLModel, table=True):
    """A generated letter body.

    A request has one master line (``is_master`` set, no destination) and
    may have one tailored line per destination. ``version`` increases
    monotonically within a line. ``template_id`` is kept for traceability
    only and is cleared when the template is deleted.
    """

    __tablename__ = "letters"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    request_id: uuid.UUID = Field(foreign_key="letter_requests.id", ondelete="CASCADE", index=True)
    destination_id: uuid.UUID | None = Field(
        default=None, foreign_key="submission_destinations.id", ondelete="CASCADE", index=True
    )
    template_id: uuid.UUID | None = Field(
        default=None, foreign_key="templates.id", ondelete="SET NULL", index=True
    )

    content: str
    version: int = Field(default=1)
    is_finalized: bool = Field(default=False)
    is_master: bool = Field(default=True)

    # Rendered artifact
    pdf_path: str | None = None
    pdf_generated_at: datetime | None = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    request: "LetterRequest" = Relationship(back_populates="letters")
    destination: Optional["SubmissionDestination"] = Relationship(back_populates="letters")
