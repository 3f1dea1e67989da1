"""Professor-side endpoints for submission destinations."""

import logging
import uuid

from fastapi import APIRouter

from app.api.deps import RendererDep, SessionDep, TransportDep
from app.core.config import settings
from app.fulfillment import destinations as destination_service
from app.fulfillment.dispatch import LetterDispatcher
from app.fulfillment.schemas import SendLetter
from app.models.submission_destination import SubmissionDestination

logger = logging.getLogger(__name__)

destinations_router = APIRouter(prefix="/destinations", tags=["destinations"])


@destinations_router.post("/{destination_id}/mark-sent", response_model=SubmissionDestination)
async def mark_sent(destination_id: uuid.UUID, session: SessionDep) -> SubmissionDestination:
    """Record a DOWNLOAD or PORTAL destination as handled."""
    return destination_service.mark_sent(session, destination_id)


@destinations_router.post("/{destination_id}/confirm", response_model=SubmissionDestination)
async def confirm(destination_id: uuid.UUID, session: SessionDep) -> SubmissionDestination:
    return destination_service.mark_confirmed(session, destination_id)


@destinations_router.post("/{destination_id}/reset", response_model=SubmissionDestination)
async def reset(destination_id: uuid.UUID, session: SessionDep) -> SubmissionDestination:
    return destination_service.reset_destination(session, destination_id)


@destinations_router.post("/{destination_id}/send", response_model=SubmissionDestination)
async def send_letter(
    destination_id: uuid.UUID,
    data: SendLetter,
    session: SessionDep,
    transport: TransportDep,
    renderer: RendererDep,
) -> SubmissionDestination:
    """E-mail a letter to an EMAIL destination.

    A transport failure answers 502 after the destination is marked FAILED.
    """
    dispatcher = LetterDispatcher(
        session,
        transport=transport,
        renderer=renderer,
        sender_address=settings.SENDER_ADDRESS,
        sender_name=settings.MAIL_FROM_NAME,
    )
    return await dispatcher.send_letter(data.letter_id, destination_id)
