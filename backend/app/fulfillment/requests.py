"""Letter request lifecycle.

Owns the request's own status. Professors move it directly through
``set_status`` and ``update_request``; students only reach it through
``mark_submitted``; destination changes reach it through
``app.fulfillment.destinations.reconcile_request_status``.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import func, or_
from sqlmodel import Session, col, select

from app.core.errors import NotFoundError
from app.fulfillment.codes import issue_unique_code
from app.fulfillment.schemas import RequestCreate, RequestUpdate, apply_patch
from app.fulfillment.uploads import delete_file
from app.models.letter_request import LetterRequest, RequestStatus

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
UPCOMING_DEADLINE_WINDOW = timedelta(days=14)


def get_request(session: Session, request_id: uuid.UUID) -> LetterRequest:
    request = session.get(LetterRequest, request_id)
    if request is None:
        raise NotFoundError("request", request_id)
    return request


def get_request_by_code(session: Session, access_code: str) -> LetterRequest | None:
    statement = select(LetterRequest).where(LetterRequest.access_code == access_code)
    return session.exec(statement).first()


def list_requests(
    session: Session,
    status: RequestStatus | None = None,
    search: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> tuple[list[LetterRequest], int]:
    """Filter requests by status and free text over student name, email and code.

    Results are ordered by nearest deadline first, then newest.

    Returns:
        (page of requests, total matching count)
    """
    conditions = []
    if status is not None:
        conditions.append(LetterRequest.status == status)
    if search:
        pattern = f"%{search}%"
        conditions.append(
            or_(
                col(LetterRequest.student_name).ilike(pattern),
                col(LetterRequest.student_email).ilike(pattern),
                col(LetterRequest.access_code).ilike(pattern),
            )
        )

    statement = (
        select(LetterRequest)
        .where(*conditions)
        .order_by(col(LetterRequest.deadline).asc().nulls_last(), col(LetterRequest.created_at).desc())
        .offset(offset)
        .limit(limit)
    )
    requests = list(session.exec(statement).all())

    total = session.exec(select(func.count()).select_from(LetterRequest).where(*conditions)).one()

    return requests, total


def create_request(session: Session, data: RequestCreate) -> LetterRequest:
    def _persist(code: str) -> LetterRequest:
        request = LetterRequest(
            access_code=code,
            deadline=data.deadline,
            professor_notes=data.professor_notes,
        )
        session.add(request)
        session.commit()
        session.refresh(request)
        return request

    request = issue_unique_code(session, _persist)
    logger.info("Letter request created", extra={"request_id": str(request.id)})
    return request


def update_request(session: Session, request_id: uuid.UUID, patch: RequestUpdate) -> LetterRequest:
    request = get_request(session, request_id)

    changed = apply_patch(request, patch)
    if changed:
        request.updated_at = datetime.now(timezone.utc)
        session.add(request)
        session.commit()
        session.refresh(request)
        logger.info(
            "Letter request updated",
            extra={"request_id": str(request_id), "fields": sorted(changed)},
        )

    return request


def set_status(session: Session, request_id: uuid.UUID, status: RequestStatus) -> LetterRequest:
    """Professor override. The next destination change re-derives completion."""
    request = get_request(session, request_id)
    previous = request.status

    request.status = status
    request.updated_at = datetime.now(timezone.utc)
    session.add(request)
    session.commit()
    session.refresh(request)

    logger.info(
        "Letter request status set",
        extra={"request_id": str(request_id), "from_status": previous.value, "to_status": status.value},
    )
    return request


def mark_submitted(session: Session, request: LetterRequest) -> LetterRequest:
    """Student finished filling in the request."""
    now = datetime.now(timezone.utc)
    request.status = RequestStatus.SUBMITTED
    request.student_submitted_at = now
    request.updated_at = now
    session.add(request)
    session.commit()
    session.refresh(request)

    logger.info("Letter request submitted by student", extra={"request_id": str(request.id)})
    return request


def mark_in_progress(session: Session, request: LetterRequest) -> None:
    """Flag that the professor started writing. Flushed, committed by the caller."""
    if request.status != RequestStatus.IN_PROGRESS:
        request.status = RequestStatus.IN_PROGRESS
        request.updated_at = datetime.now(timezone.utc)
        session.add(request)
        session.flush()


def regenerate_access_code(session: Session, request_id: uuid.UUID) -> LetterRequest:
    request = get_request(session, request_id)

    def _persist(code: str) -> LetterRequest:
        # A rollback from an earlier collision expires the instance, so reload it
        current = get_request(session, request_id)
        current.access_code = code
        current.code_generated_at = datetime.now(timezone.utc)
        current.updated_at = current.code_generated_at
        session.add(current)
        session.commit()
        session.refresh(current)
        return current

    request = issue_unique_code(session, _persist)
    logger.info("Access code regenerated", extra={"request_id": str(request.id)})
    return request


def delete_request(session: Session, request_id: uuid.UUID) -> None:
    """Delete a request with its documents, destinations and letters.

    Stored upload and PDF files are removed after the rows are gone.
    """
    request = get_request(session, request_id)

    file_paths = [document.path for document in request.documents]
    file_paths += [letter.pdf_path for letter in request.letters if letter.pdf_path]

    session.delete(request)
    session.commit()

    for path in file_paths:
        delete_file(path)

    logger.info(
        "Letter request deleted",
        extra={"request_id": str(request_id), "files_removed": len(file_paths)},
    )


def get_request_stats(session: Session, now: datetime | None = None) -> dict[str, Any]:
    """Counts per status plus the next few deadlines that are not completed."""
    now = now or datetime.now(timezone.utc)

    rows = session.exec(
        select(LetterRequest.status, func.count()).group_by(LetterRequest.status)
    ).all()
    counts = {status: 0 for status in RequestStatus}
    for status, count in rows:
        counts[status] = count

    upcoming = session.exec(
        select(LetterRequest)
        .where(
            col(LetterRequest.deadline) >= now,
            col(LetterRequest.deadline) <= now + UPCOMING_DEADLINE_WINDOW,
            LetterRequest.status != RequestStatus.COMPLETED,
        )
        .order_by(col(LetterRequest.deadline).asc())
        .limit(5)
    ).all()

    return {
        "total": sum(counts.values()),
        "pending": counts[RequestStatus.PENDING],
        "submitted": counts[RequestStatus.SUBMITTED],
        "in_progress": counts[RequestStatus.IN_PROGRESS],
        "completed": counts[RequestStatus.COMPLETED],
        "upcoming_deadlines": list(upcoming),
    }
