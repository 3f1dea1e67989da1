"""Letter generation and versioning.

A letter is produced by interpolating a template with values taken from
the request and the professor profile. Regenerating while the latest
letter is still a draft rewrites that draft; once it is finalized a new
letter is created. Either way the version number goes up.

Letters form lines: the master line of a request plus one tailored line
per submission destination. The master written by ``generate_all_letters``
carries placeholders where the institution and program go so it can be
copied onto every destination with ``sync_master_to_destinations``.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any

from sqlmodel import Session, col, select

from app.core.errors import LetterFinalizedError, NotFoundError, RequestNotReadyError
from app.fulfillment.interpolation import format_letter_date, interpolate_template, missing_variables
from app.fulfillment.profile import get_professor
from app.fulfillment.requests import get_request, mark_in_progress
from app.fulfillment.schemas import LetterGenerate, LetterUpdate
from app.fulfillment.templates import declared_variable_names, get_template
from app.fulfillment.uploads import delete_file
from app.models.letter import Letter
from app.models.letter_request import LetterRequest, RequestStatus
from app.models.professor import Professor
from app.models.submission_destination import SubmissionDestination
from app.models.template import Template

logger = logging.getLogger(__name__)

LETTER_READY_STATUSES = (RequestStatus.SUBMITTED, RequestStatus.IN_PROGRESS)

PLACEHOLDER_INSTITUTION = "[INSTITUTION]"
PLACEHOLDER_PROGRAM = "[PROGRAM]"


def destination_institution(request: LetterRequest, destination: SubmissionDestination) -> str:
    return destination.institution_name or request.institution_applying or ""


def destination_program(request: LetterRequest, destination: SubmissionDestination) -> str:
    return destination.program_name or request.program_applying or ""


def build_letter_variables(
    request: LetterRequest,
    professor: Professor | None,
    today: date | None = None,
    destination: SubmissionDestination | None = None,
    use_placeholders: bool = False,
) -> dict[str, str]:
    """Collect interpolation values for a letter.

    ``program`` and ``institution`` come from the destination when one is
    given, from the placeholders when ``use_placeholders`` is set, and from
    the request otherwise.
    """
    student_name = request.student_name or ""
    if destination is not None:
        program = destination_program(request, destination)
        institution = destination_institution(request, destination)
    elif use_placeholders:
        program = PLACEHOLDER_PROGRAM
        institution = PLACEHOLDER_INSTITUTION
    else:
        program = request.program_applying or ""
        institution = request.institution_applying or ""

    return {
        "student_name": student_name,
        "student_first_name": student_name.split(" ")[0] if student_name else "",
        "student_email": request.student_email or "",
        "student_phone": request.student_phone or "",
        "program": program,
        "institution": institution,
        "degree_type": request.degree_type or "",
        "course_taken": request.course_taken or "",
        "grade": request.grade or "",
        "semester_year": request.semester_year or "",
        "professor_name": professor.name if professor else "",
        "professor_title": (professor.title or "") if professor else "",
        "department": (professor.department or "") if professor else "",
        "professor_institution": (professor.institution or "") if professor else "",
        "date": format_letter_date(today or date.today()),
    }


def get_letter(session: Session, letter_id: uuid.UUID) -> Letter:
    letter = session.get(Letter, letter_id)
    if letter is None:
        raise NotFoundError("letter", letter_id)
    return letter


def list_letters_for_request(session: Session, request_id: uuid.UUID) -> list[Letter]:
    get_request(session, request_id)
    statement = (
        select(Letter).where(Letter.request_id == request_id).order_by(col(Letter.version).desc())
    )
    return list(session.exec(statement).all())


def latest_letter(
    session: Session, request_id: uuid.UUID, destination_id: uuid.UUID | None = None
) -> Letter | None:
    """Return the newest letter of one line; the master line when no destination is given."""
    statement = select(Letter).where(Letter.request_id == request_id)
    if destination_id is None:
        statement = statement.where(col(Letter.destination_id).is_(None))
    else:
        statement = statement.where(Letter.destination_id == destination_id)
    return session.exec(statement.order_by(col(Letter.version).desc())).first()


def _get_request_destination(
    session: Session, request: LetterRequest, destination_id: uuid.UUID
) -> SubmissionDestination:
    destination = session.get(SubmissionDestination, destination_id)
    if destination is None or destination.request_id != request.id:
        raise NotFoundError("destination", destination_id)
    return destination


def _get_ready_request(session: Session, request_id: uuid.UUID) -> LetterRequest:
    request = get_request(session, request_id)
    if request.status not in LETTER_READY_STATUSES:
        raise RequestNotReadyError(request.id, request.status.value)
    return request


def _upsert_letter(
    session: Session,
    request: LetterRequest,
    template_id: uuid.UUID | None,
    content: str,
    destination_id: uuid.UUID | None = None,
) -> Letter:
    # Draft is rewritten in place; a finalized letter starts a new version
    current = latest_letter(session, request.id, destination_id)

    if current is not None and not current.is_finalized:
        current.content = content
        current.template_id = template_id
        current.version += 1
        current.updated_at = datetime.now(timezone.utc)
        letter = current
    else:
        letter = Letter(
            request_id=request.id,
            destination_id=destination_id,
            is_master=destination_id is None,
            template_id=template_id,
            content=content,
            version=current.version + 1 if current else 1,
        )

    session.add(letter)
    return letter


def _warn_unfilled(template: Template, variables: dict[str, str], request: LetterRequest) -> None:
    unfilled = missing_variables(declared_variable_names(template), variables)
    if unfilled:
        logger.warning(
            "Letter generated with unfilled template variables",
            extra={"request_id": str(request.id), "template_id": str(template.id), "missing": unfilled},
        )


def generate_letter(session: Session, data: LetterGenerate) -> Letter:
    """Interpolate a template for a submitted request.

    The result is the master letter, filled with the request's own program
    and institution.

    Raises:
        NotFoundError: If the request or template does not exist
        RequestNotReadyError: If the student has not submitted yet
    """
    request = _get_ready_request(session, data.request_id)
    template = get_template(session, data.template_id)

    variables = build_letter_variables(request, get_professor(session))
    content = interpolate_template(template.content, variables)
    _warn_unfilled(template, variables, request)

    letter = _upsert_letter(session, request, template.id, content)
    mark_in_progress(session, request)
    session.commit()
    session.refresh(letter)

    logger.info(
        "Letter generated",
        extra={"request_id": str(request.id), "letter_id": str(letter.id), "version": letter.version},
    )
    return letter


def generate_all_letters(session: Session, data: LetterGenerate) -> dict[str, Any]:
    """Write a placeholder master plus one tailored letter per destination.

    Each letter follows the same draft/finalized versioning as
    ``generate_letter`` within its own line.

    Returns:
        ``{"master": Letter, "destination_letters": [Letter, ...]}``

    Raises:
        NotFoundError: If the request or template does not exist
        RequestNotReadyError: If the student has not submitted yet
    """
    request = _get_ready_request(session, data.request_id)
    template = get_template(session, data.template_id)
    professor = get_professor(session)
    today = date.today()

    master_variables = build_letter_variables(request, professor, today, use_placeholders=True)
    master = _upsert_letter(
        session, request, template.id, interpolate_template(template.content, master_variables)
    )
    _warn_unfilled(template, master_variables, request)

    destination_letters = []
    for destination in request.destinations:
        variables = build_letter_variables(request, professor, today, destination=destination)
        content = interpolate_template(template.content, variables)
        destination_letters.append(_upsert_letter(session, request, template.id, content, destination.id))

    mark_in_progress(session, request)
    session.commit()
    session.refresh(master)
    for letter in destination_letters:
        session.refresh(letter)

    logger.info(
        "Generated master and destination letters",
        extra={
            "request_id": str(request.id),
            "master_id": str(master.id),
            "destinations": len(destination_letters),
        },
    )
    return {"master": master, "destination_letters": destination_letters}


def get_master_letter(session: Session, request_id: uuid.UUID) -> Letter | None:
    get_request(session, request_id)
    return latest_letter(session, request_id)


def get_letter_for_destination(
    session: Session, request_id: uuid.UUID, destination_id: uuid.UUID
) -> Letter | None:
    """Return the newest letter tailored to one destination of the request.

    Raises:
        NotFoundError: If the request is unknown or the destination belongs elsewhere
    """
    request = get_request(session, request_id)
    _get_request_destination(session, request, destination_id)
    return latest_letter(session, request_id, destination_id)


def sync_master_to_destinations(session: Session, request_id: uuid.UUID) -> list[Letter]:
    """Copy the master letter onto every destination.

    Placeholders in the master are replaced with the destination's
    institution and program, falling back to the request's values.

    Raises:
        NotFoundError: If the request is unknown or has no master letter
    """
    request = get_request(session, request_id)
    master = latest_letter(session, request_id)
    if master is None:
        raise NotFoundError("master_letter", request_id)

    synced = []
    for destination in request.destinations:
        content = master.content.replace(
            PLACEHOLDER_INSTITUTION, destination_institution(request, destination)
        ).replace(PLACEHOLDER_PROGRAM, destination_program(request, destination))
        synced.append(_upsert_letter(session, request, master.template_id, content, destination.id))

    session.commit()
    for letter in synced:
        session.refresh(letter)

    logger.info(
        "Synced master letter to destinations",
        extra={"request_id": str(request_id), "master_id": str(master.id), "destinations": len(synced)},
    )
    return synced


def get_letters_with_destinations(session: Session, request_id: uuid.UUID) -> dict[str, Any]:
    """Pair each destination with its newest tailored letter.

    Returns:
        ``{"master": Letter | None, "by_destination": [{"destination", "letter"}, ...]}``
    """
    request = get_request(session, request_id)
    return {
        "master": latest_letter(session, request_id),
        "by_destination": [
            {"destination": destination, "letter": latest_letter(session, request_id, destination.id)}
            for destination in request.destinations
        ],
    }


def update_letter(session: Session, letter_id: uuid.UUID, data: LetterUpdate) -> Letter:
    letter = get_letter(session, letter_id)
    if letter.is_finalized:
        raise LetterFinalizedError(letter.id)

    letter.content = data.content
    letter.updated_at = datetime.now(timezone.utc)
    session.add(letter)
    session.commit()
    session.refresh(letter)
    return letter


def finalize_letter(session: Session, letter_id: uuid.UUID) -> Letter:
    # Request status is left to destination aggregation
    letter = get_letter(session, letter_id)
    if letter.is_finalized:
        raise LetterFinalizedError(letter.id)

    letter.is_finalized = True
    letter.updated_at = datetime.now(timezone.utc)
    session.add(letter)
    session.commit()
    session.refresh(letter)
    return letter


def unfinalize_letter(session: Session, letter_id: uuid.UUID) -> Letter:
    letter = get_letter(session, letter_id)
    if not letter.is_finalized:
        raise LetterFinalizedError(letter.id, finalized=False)

    letter.is_finalized = False
    letter.updated_at = datetime.now(timezone.utc)
    session.add(letter)
    session.commit()
    session.refresh(letter)
    return letter


def delete_letter(session: Session, letter_id: uuid.UUID) -> None:
    letter = get_letter(session, letter_id)
    pdf_path = letter.pdf_path

    session.delete(letter)
    session.commit()

    if pdf_path:
        delete_file(pdf_path)


def delete_all_letters_for_request(session: Session, request_id: uuid.UUID) -> int:
    """Drop every letter of a request so the professor can start over.

    A request that was being written or was complete goes back to SUBMITTED.

    Returns:
        Number of letters deleted
    """
    request = get_request(session, request_id)
    letters = session.exec(select(Letter).where(Letter.request_id == request_id)).all()

    pdf_paths = [letter.pdf_path for letter in letters if letter.pdf_path]
    for letter in letters:
        session.delete(letter)

    if request.status in (RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED):
        request.status = RequestStatus.SUBMITTED
        request.updated_at = datetime.now(timezone.utc)
        session.add(request)

    session.commit()

    for path in pdf_paths:
        delete_file(path)

    logger.info(
        "Deleted all letters for request",
        extra={"request_id": str(request_id), "deleted": len(letters)},
    )
    return len(letters)
