"""Student-facing access to a request through its access code.

A student may read and change a request only while it is PENDING or
SUBMITTED. Once the professor starts writing, the code still resolves but
every operation is refused with the reason.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlmodel import Session, select

from app.core.errors import AccessDeniedError, IncompleteSubmissionError, NotFoundError
from app.fulfillment.codes import normalize_access_code
from app.fulfillment.requests import get_request_by_code, mark_submitted
from app.fulfillment.schemas import DestinationInput, StudentInfo
from app.fulfillment.uploads import IncomingFile, accept_uploads, delete_file
from app.models.document import Document
from app.models.letter_request import STUDENT_EDITABLE_STATUSES, LetterRequest, RequestStatus
from app.models.submission_destination import SubmissionDestination

logger = logging.getLogger(__name__)

DENIAL_REASONS = {
    RequestStatus.IN_PROGRESS: "in_progress",
    RequestStatus.COMPLETED: "completed",
}


def _denial_reason(status: RequestStatus) -> str:
    return DENIAL_REASONS.get(status, "archived")


def validate_code(session: Session, code: str) -> dict[str, Any]:
    """Report whether a code can be used, without raising.

    Returns:
        {"valid": bool, "status": status or None, "reason": None | "not_found" | "in_progress" | "completed"}
    """
    request = get_request_by_code(session, normalize_access_code(code))
    if request is None:
        return {"valid": False, "status": None, "reason": "not_found"}
    if request.status not in STUDENT_EDITABLE_STATUSES:
        return {"valid": False, "status": request.status, "reason": _denial_reason(request.status)}
    return {"valid": True, "status": request.status, "reason": None}


def get_request_for_student(session: Session, code: str) -> LetterRequest:
    """Resolve a code to a request the student may still change.

    Raises:
        NotFoundError: If no request holds the code
        AccessDeniedError: If the request is past the student stage
    """
    normalized = normalize_access_code(code)
    request = get_request_by_code(session, normalized)
    if request is None:
        raise NotFoundError("request", normalized)
    if request.status not in STUDENT_EDITABLE_STATUSES:
        raise AccessDeniedError(request.status.value, _denial_reason(request.status))
    return request


def update_student_info(session: Session, code: str, info: StudentInfo) -> LetterRequest:
    request = get_request_for_student(session, code)

    for field_name, value in info.model_dump().items():
        setattr(request, field_name, value)
    request.updated_at = datetime.now(timezone.utc)
    session.add(request)
    session.commit()
    session.refresh(request)

    logger.info("Student info updated", extra={"request_id": str(request.id)})
    return request


def add_documents(
    session: Session,
    code: str,
    files: list[IncomingFile],
    upload_dir: str,
    max_file_size: int,
    max_files: int,
    label: str | None = None,
    description: str | None = None,
) -> tuple[list[Document], list[str]]:
    """Validate and attach uploaded files.

    Returns:
        (created documents, original names of files rejected by content check)
    """
    request = get_request_for_student(session, code)

    result = accept_uploads(
        files,
        upload_dir=upload_dir,
        request_code=request.access_code,
        max_file_size=max_file_size,
        max_files=max_files,
    )

    documents = [
        Document(
            request_id=request.id,
            original_name=upload.original_name,
            stored_name=upload.stored_name,
            mime_type=upload.mime_type,
            size=upload.size,
            path=upload.path,
            label=label,
            description=description,
        )
        for upload in result.valid
    ]
    session.add_all(documents)
    session.commit()
    for document in documents:
        session.refresh(document)

    logger.info(
        "Documents uploaded",
        extra={"request_id": str(request.id), "accepted": len(documents), "rejected": len(result.invalid)},
    )
    return documents, result.invalid


def delete_document(session: Session, code: str, document_id: uuid.UUID) -> None:
    request = get_request_for_student(session, code)

    document = session.exec(
        select(Document).where(Document.id == document_id, Document.request_id == request.id)
    ).first()
    if document is None:
        raise NotFoundError("document", document_id)

    path = document.path
    session.delete(document)
    session.commit()
    delete_file(path)


def _get_own_destination(
    session: Session, request: LetterRequest, destination_id: uuid.UUID
) -> SubmissionDestination:
    destination = session.exec(
        select(SubmissionDestination).where(
            SubmissionDestination.id == destination_id,
            SubmissionDestination.request_id == request.id,
        )
    ).first()
    if destination is None:
        raise NotFoundError("destination", destination_id)
    return destination


def add_destination(session: Session, code: str, data: DestinationInput) -> SubmissionDestination:
    request = get_request_for_student(session, code)

    destination = SubmissionDestination(request_id=request.id, **data.model_dump())
    session.add(destination)
    session.commit()
    session.refresh(destination)

    logger.info(
        "Destination added",
        extra={"request_id": str(request.id), "destination_id": str(destination.id), "method": data.method.value},
    )
    return destination


def update_destination(
    session: Session, code: str, destination_id: uuid.UUID, data: DestinationInput
) -> SubmissionDestination:
    # Full replacement; status and delivery stamps are not student-editable
    request = get_request_for_student(session, code)
    destination = _get_own_destination(session, request, destination_id)

    for field_name, value in data.model_dump().items():
        setattr(destination, field_name, value)
    destination.updated_at = datetime.now(timezone.utc)
    session.add(destination)
    session.commit()
    session.refresh(destination)
    return destination


def delete_destination(session: Session, code: str, destination_id: uuid.UUID) -> None:
    request = get_request_for_student(session, code)
    destination = _get_own_destination(session, request, destination_id)

    session.delete(destination)
    session.commit()


def submit(session: Session, code: str) -> LetterRequest:
    """Hand the request to the professor.

    Raises:
        IncompleteSubmissionError: If name, e-mail or every destination is missing
    """
    request = get_request_for_student(session, code)

    missing = []
    if not request.student_name:
        missing.append("student_name")
    if not request.student_email:
        missing.append("student_email")
    if missing:
        raise IncompleteSubmissionError("Student name and email are required", missing)
    if not request.destinations:
        raise IncompleteSubmissionError(
            "At least one submission destination is required", ["destinations"]
        )

    return mark_submitted(session, request)
