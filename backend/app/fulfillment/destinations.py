"""Destination status tracking and request completion aggregation.

Each destination moves through PENDING -> SENT -> CONFIRMED, or to FAILED
when a send attempt breaks. Moves are forward-only; ``reset_destination``
is the one way back to PENDING. After every move the owning request's
status is re-derived from all of its destinations.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlmodel import Session, select

from app.core.errors import InvalidTransitionError, NotFoundError, WrongMethodError
from app.models.letter_request import LetterRequest, RequestStatus
from app.models.submission_destination import (
    SubmissionDestination,
    SubmissionMethod,
    SubmissionStatus,
)

logger = logging.getLogger(__name__)


# =============================================================================
# TRANSITIONS
# =============================================================================
#
# target status -> statuses it may be entered from
#
# FAILED -> SENT is a human resubmission; nothing retries automatically.
# FAILED -> FAILED records the reason of a resubmission that broke again.
#
ALLOWED_TRANSITIONS: dict[SubmissionStatus, frozenset[SubmissionStatus]] = {
    SubmissionStatus.SENT: frozenset({SubmissionStatus.PENDING, SubmissionStatus.FAILED}),
    SubmissionStatus.FAILED: frozenset(
        {SubmissionStatus.PENDING, SubmissionStatus.SENT, SubmissionStatus.FAILED}
    ),
    SubmissionStatus.CONFIRMED: frozenset({SubmissionStatus.SENT}),
    SubmissionStatus.PENDING: frozenset(SubmissionStatus),
}

DELIVERED_STATUSES = frozenset({SubmissionStatus.SENT, SubmissionStatus.CONFIRMED})

MANUAL_SEND_METHODS = frozenset({SubmissionMethod.DOWNLOAD, SubmissionMethod.PORTAL})

# A SENT destination may be e-mailed again; only a confirmed receipt closes it.
DISPATCHABLE_STATUSES = frozenset({SubmissionStatus.PENDING, SubmissionStatus.SENT, SubmissionStatus.FAILED})


def can_transition(current: SubmissionStatus, target: SubmissionStatus) -> bool:
    return current in ALLOWED_TRANSITIONS[target]


def get_destination(session: Session, destination_id: uuid.UUID) -> SubmissionDestination:
    destination = session.get(SubmissionDestination, destination_id)
    if destination is None:
        raise NotFoundError("destination", destination_id)
    return destination


def _transition(
    session: Session,
    destination: SubmissionDestination,
    target: SubmissionStatus,
    failure_reason: str | None = None,
) -> SubmissionDestination:
    current = destination.status
    if not can_transition(current, target):
        raise InvalidTransitionError(destination.id, current.value, target.value)

    now = datetime.now(timezone.utc)

    if target == SubmissionStatus.SENT:
        destination.sent_at = now
        destination.failure_reason = None
    elif target == SubmissionStatus.CONFIRMED:
        destination.confirmed_at = now
    elif target == SubmissionStatus.FAILED:
        destination.failure_reason = failure_reason
    elif target == SubmissionStatus.PENDING:
        destination.sent_at = None
        destination.confirmed_at = None
        destination.failure_reason = None

    destination.status = target
    destination.updated_at = now
    session.add(destination)
    session.flush()

    logger.info(
        "Destination status changed",
        extra={
            "destination_id": str(destination.id),
            "request_id": str(destination.request_id),
            "from_status": current.value,
            "to_status": target.value,
        },
    )

    reconcile_request_status(session, destination.request_id)
    session.commit()
    session.refresh(destination)
    return destination


def reconcile_request_status(session: Session, request_id: uuid.UUID) -> RequestStatus | None:
    """Re-derive the request's completion from its destinations.

    - no destinations: status is left alone, a request never completes empty
    - every destination SENT or CONFIRMED: COMPLETED
    - otherwise a COMPLETED request falls back to IN_PROGRESS

    Other statuses (including ones a professor set directly) are only
    touched by the two rules above. Changes are flushed, not committed.

    Returns:
        The request status after reconciliation, or None if the request is gone
    """
    request = session.get(LetterRequest, request_id)
    if request is None:
        return None

    statuses = session.exec(
        select(SubmissionDestination.status).where(SubmissionDestination.request_id == request_id)
    ).all()

    if not statuses:
        return request.status

    if all(status in DELIVERED_STATUSES for status in statuses):
        new_status = RequestStatus.COMPLETED
    elif request.status == RequestStatus.COMPLETED:
        new_status = RequestStatus.IN_PROGRESS
    else:
        return request.status

    if new_status != request.status:
        logger.info(
            "Request status reconciled from destinations",
            extra={
                "request_id": str(request_id),
                "from_status": request.status.value,
                "to_status": new_status.value,
            },
        )
        request.status = new_status
        request.updated_at = datetime.now(timezone.utc)
        session.add(request)
        session.flush()

    return request.status


def mark_sent(session: Session, destination_id: uuid.UUID) -> SubmissionDestination:
    """Record that a DOWNLOAD or PORTAL destination was handled by hand."""
    destination = get_destination(session, destination_id)
    if destination.method not in MANUAL_SEND_METHODS:
        raise WrongMethodError(destination.id, destination.method.value, "DOWNLOAD or PORTAL")
    return _transition(session, destination, SubmissionStatus.SENT)


def record_dispatch_success(session: Session, destination: SubmissionDestination) -> SubmissionDestination:
    """Move a destination to SENT after an automated send went through.

    Re-sending to a destination that is already SENT re-stamps ``sent_at``.
    """
    if destination.status != SubmissionStatus.SENT:
        return _transition(session, destination, SubmissionStatus.SENT)

    now = datetime.now(timezone.utc)
    destination.sent_at = now
    destination.updated_at = now
    session.add(destination)
    session.commit()
    session.refresh(destination)

    logger.info(
        "Destination re-sent",
        extra={"destination_id": str(destination.id), "request_id": str(destination.request_id)},
    )
    return destination


def record_dispatch_failure(
    session: Session, destination: SubmissionDestination, reason: str
) -> SubmissionDestination:
    return _transition(session, destination, SubmissionStatus.FAILED, failure_reason=reason)


def mark_confirmed(session: Session, destination_id: uuid.UUID) -> SubmissionDestination:
    destination = get_destination(session, destination_id)
    return _transition(session, destination, SubmissionStatus.CONFIRMED)


def reset_destination(session: Session, destination_id: uuid.UUID) -> SubmissionDestination:
    destination = get_destination(session, destination_id)
    return _transition(session, destination, SubmissionStatus.PENDING)
