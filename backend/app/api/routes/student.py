"""Student-facing endpoints, addressed by access code instead of id."""

import logging
import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, File, Form, UploadFile
from pydantic import BaseModel

from app.api.deps import SessionDep
from app.core.config import settings
from app.fulfillment import students as student_service
from app.fulfillment.schemas import DestinationInput, StudentInfo
from app.fulfillment.uploads import IncomingFile
from app.models.letter_request import RequestStatus
from app.models.submission_destination import SubmissionDestination, SubmissionMethod

logger = logging.getLogger(__name__)

student_router = APIRouter(prefix="/student", tags=["student"])


class CodeValidationResponse(BaseModel):
    valid: bool
    status: RequestStatus | None = None
    reason: str | None = None


class StudentDocument(BaseModel):
    id: uuid.UUID
    original_name: str
    mime_type: str
    size: int
    label: str | None = None
    description: str | None = None
    created_at: datetime


class StudentDestination(BaseModel):
    id: uuid.UUID
    institution_name: str
    program_name: str | None = None
    recipient_name: str | None = None
    recipient_email: str | None = None
    portal_url: str | None = None
    portal_instructions: str | None = None
    method: SubmissionMethod
    deadline: datetime | None = None


class StudentRequestView(BaseModel):
    """What a student may see of a request. Professor notes and letters stay hidden."""
    id: uuid.UUID
    access_code: str
    status: RequestStatus
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
    custom_fields: dict[str, Any] | None = None
    deadline: datetime | None = None
    documents: list[StudentDocument] = []
    destinations: list[StudentDestination] = []


class UploadResponse(BaseModel):
    documents: list[StudentDocument]
    invalid_files: list[str]


def _view(request) -> StudentRequestView:
    return StudentRequestView.model_validate(
        {
            **request.model_dump(),
            "documents": [document.model_dump() for document in request.documents],
            "destinations": [destination.model_dump() for destination in request.destinations],
        }
    )


@student_router.get("/{code}/validate", response_model=CodeValidationResponse)
async def validate_code(code: str, session: SessionDep) -> CodeValidationResponse:
    return CodeValidationResponse(**student_service.validate_code(session, code))


@student_router.get("/{code}", response_model=StudentRequestView)
async def get_request(code: str, session: SessionDep) -> StudentRequestView:
    return _view(student_service.get_request_for_student(session, code))


@student_router.put("/{code}", response_model=StudentRequestView)
async def update_info(code: str, info: StudentInfo, session: SessionDep) -> StudentRequestView:
    return _view(student_service.update_student_info(session, code, info))


@student_router.post("/{code}/documents", response_model=UploadResponse, status_code=201)
async def upload_documents(
    code: str,
    session: SessionDep,
    files: list[UploadFile] = File(...),
    label: str | None = Form(None),
    description: str | None = Form(None),
) -> UploadResponse:
    """Upload supporting documents.

    A disallowed declared type or an oversized file rejects the whole batch.
    Files whose content does not match their type are dropped and listed in
    ``invalid_files``.
    """
    # One byte past the limit is enough for the size check to reject the file.
    read_limit = settings.MAX_FILE_SIZE + 1
    incoming = [
        IncomingFile(
            filename=upload.filename or "upload",
            content_type=upload.content_type,
            data=await upload.read(read_limit),
        )
        for upload in files
    ]
    documents, invalid = student_service.add_documents(
        session,
        code,
        incoming,
        upload_dir=settings.UPLOAD_DIR,
        max_file_size=settings.MAX_FILE_SIZE,
        max_files=settings.MAX_FILES_PER_UPLOAD,
        label=label,
        description=description,
    )
    return UploadResponse(
        documents=[StudentDocument.model_validate(document.model_dump()) for document in documents],
        invalid_files=invalid,
    )


@student_router.delete("/{code}/documents/{document_id}", status_code=204)
async def delete_document(code: str, document_id: uuid.UUID, session: SessionDep) -> None:
    student_service.delete_document(session, code, document_id)


@student_router.post("/{code}/destinations", response_model=SubmissionDestination, status_code=201)
async def add_destination(code: str, data: DestinationInput, session: SessionDep) -> SubmissionDestination:
    return student_service.add_destination(session, code, data)


@student_router.put("/{code}/destinations/{destination_id}", response_model=SubmissionDestination)
async def update_destination(
    code: str, destination_id: uuid.UUID, data: DestinationInput, session: SessionDep
) -> SubmissionDestination:
    return student_service.update_destination(session, code, destination_id, data)


@student_router.delete("/{code}/destinations/{destination_id}", status_code=204)
async def delete_destination(code: str, destination_id: uuid.UUID, session: SessionDep) -> None:
    student_service.delete_destination(session, code, destination_id)


@student_router.post("/{code}/submit", response_model=StudentRequestView)
async def submit(code: str, session: SessionDep) -> StudentRequestView:
    return _view(student_service.submit(session, code))
