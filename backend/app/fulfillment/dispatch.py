"""E-mail dispatch of a finished letter to one destination.

The PDF is reused when a current one exists, otherwise rendered. A send
that goes through moves the destination to SENT; any transport error moves
it to FAILED with the error text before ``TransportFailure`` is raised, so
the failure is on record even if the caller drops the exception.
"""

import html
import logging
import re
import uuid

from sqlmodel import Session

from app.core.errors import (
    DestinationMismatchError,
    InvalidTransitionError,
    MissingRecipientError,
    TransportFailure,
    WrongMethodError,
)
from app.core.tracing import get_tracer, safe_span_attributes
from app.fulfillment.destinations import (
    DISPATCHABLE_STATUSES,
    get_destination,
    record_dispatch_failure,
    record_dispatch_success,
)
from app.fulfillment.letters import get_letter
from app.fulfillment.profile import get_professor
from app.integrations.mail_transport import Attachment, MailTransport, OutgoingMessage
from app.integrations.pdf_renderer import LetterRenderer
from app.models.letter_request import LetterRequest
from app.models.professor import Professor
from app.models.submission_destination import SubmissionDestination, SubmissionMethod, SubmissionStatus

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

DEFAULT_SENDER_NAME = "Recommate"


def attachment_filename(student_name: str) -> str:
    underscored = re.sub(r"\s+", "_", student_name)
    return f"Recommendation_Letter_{underscored}.pdf"


def _signature_lines(professor: Professor | None) -> list[str]:
    if professor is None:
        return ["Professor"]
    lines = [professor.name or "Professor"]
    lines += [value for value in (professor.title, professor.department, professor.institution) if value]
    return lines


def compose_letter_email(
    request: LetterRequest,
    destination: SubmissionDestination,
    professor: Professor | None,
    sender_address: str,
    sender_name: str,
    pdf_path: str,
) -> OutgoingMessage:
    """Build the cover e-mail that carries the letter PDF.

    Missing values fall back to neutral wording, so a request with no
    student name still produces a readable message.
    """
    student_name = request.student_name or "a student"
    recipient = destination.recipient_name or "Admissions Committee"
    program = destination.program_name or "your program"
    signature = _signature_lines(professor)

    text = (
        f"Dear {recipient},\n\n"
        f"Please find attached a letter of recommendation for {student_name} "
        f"applying to {program} at {destination.institution_name}.\n\n"
        "If you have any questions, please feel free to contact me.\n\n"
        "Sincerely,\n" + "\n".join(signature)
    )

    body_html = (
        f"<p>Dear {html.escape(recipient)},</p>\n"
        f"<p>Please find attached a letter of recommendation for "
        f"<strong>{html.escape(student_name)}</strong> applying to "
        f"{html.escape(program)} at {html.escape(destination.institution_name)}.</p>\n"
        "<p>If you have any questions, please feel free to contact me.</p>\n"
        "<p>Sincerely,<br>\n" + "<br>\n".join(html.escape(line) for line in signature) + "</p>\n"
    )

    return OutgoingMessage(
        from_name=(professor.name if professor and professor.name else sender_name),
        from_address=sender_address,
        to=destination.recipient_email or "",
        subject=f"Letter of Recommendation for {student_name}",
        text=text,
        html=body_html,
        attachments=[Attachment(filename=attachment_filename(student_name), path=pdf_path)],
    )


class LetterDispatcher:
    """Send a letter to an EMAIL destination and record the outcome."""

    def __init__(
        self,
        session: Session,
        transport: MailTransport,
        renderer: LetterRenderer,
        sender_address: str,
        sender_name: str = DEFAULT_SENDER_NAME,
    ):
        self.session = session
        self.transport = transport
        self.renderer = renderer
        self.sender_address = sender_address
        self.sender_name = sender_name

    def _check_preconditions(self, letter_id: uuid.UUID, destination_id: uuid.UUID):
        letter = get_letter(self.session, letter_id)
        destination = get_destination(self.session, destination_id)

        if destination.request_id != letter.request_id:
            raise DestinationMismatchError(destination.id, letter.request_id)
        if destination.method != SubmissionMethod.EMAIL:
            raise WrongMethodError(destination.id, destination.method.value, "EMAIL")
        if not destination.recipient_email:
            raise MissingRecipientError(destination.id)
        if destination.status not in DISPATCHABLE_STATUSES:
            raise InvalidTransitionError(
                destination.id, destination.status.value, SubmissionStatus.SENT.value
            )

        return letter, destination

    def _pdf_path(self, letter_id: uuid.UUID) -> str:
        existing = self.renderer.get_existing_artifact_path(letter_id)
        if existing:
            return existing
        return self.renderer.render_artifact(letter_id)

    async def send_letter(self, letter_id: uuid.UUID, destination_id: uuid.UUID) -> SubmissionDestination:
        """Dispatch ``letter_id`` to ``destination_id``.

        Raises:
            NotFoundError: If the letter or destination does not exist
            DestinationMismatchError: If they belong to different requests
            WrongMethodError: If the destination is not EMAIL
            MissingRecipientError: If the destination has no recipient address
            InvalidTransitionError: If the destination is already CONFIRMED
            TransportFailure: If the transport raised, after FAILED is recorded
        """
        with tracer.start_as_current_span("letter.dispatch") as span:
            span.set_attributes(safe_span_attributes(
                letter_id=str(letter_id),
                destination_id=str(destination_id),
            ))

            letter, destination = self._check_preconditions(letter_id, destination_id)
            span.set_attributes(safe_span_attributes(
                recipient_email=destination.recipient_email,
                access_code=letter.request.access_code,
            ))

            pdf_path = self._pdf_path(letter.id)

            message = compose_letter_email(
                request=letter.request,
                destination=destination,
                professor=get_professor(self.session),
                sender_address=self.sender_address,
                sender_name=self.sender_name,
                pdf_path=pdf_path,
            )
            span.set_attributes(safe_span_attributes(subject=message.subject))

            try:
                await self.transport.send(message)
            except Exception as e:
                reason = str(e)
                logger.error(
                    "Letter dispatch failed",
                    extra={
                        "letter_id": str(letter_id),
                        "destination_id": str(destination_id),
                        "error": reason,
                    },
                )
                record_dispatch_failure(self.session, destination, reason)
                span.set_attribute("dispatch_outcome", "failed")
                raise TransportFailure(destination.id, reason) from e

            destination = record_dispatch_success(self.session, destination)
            span.set_attribute("dispatch_outcome", "sent")
            logger.info(
                "Letter dispatched",
                extra={"letter_id": str(letter_id), "destination_id": str(destination_id)},
            )
            return destination
