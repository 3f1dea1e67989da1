"""Import every table model so SQLModel.metadata and the mapper registry see them."""

from app.models.professor import Professor
from app.models.letter_request import LetterRequest, RequestStatus
from app.models.document import Document
from app.models.submission_destination import (
    SubmissionDestination,
    SubmissionMethod,
    SubmissionStatus,
)
from app.models.template import Template
from app.models.letter import Letter

__all__ = [
    "Professor",
    "LetterRequest",
    "RequestStatus",
    "Document",
    "SubmissionDestination",
    "SubmissionMethod",
    "SubmissionStatus",
    "Template",
    "Letter",
]
