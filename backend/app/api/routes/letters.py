"""Letter generation, editing and PDF endpoints."""

import logging
import uuid

from fastapi import APIRouter
from fastapi.responses import FileResponse
from pydantic import BaseModel

from app.api.deps import RendererDep, SessionDep
from app.fulfillment import letters as letter_service
from app.fulfillment.dispatch import attachment_filename
from app.fulfillment.schemas import LetterGenerate, LetterUpdate
from app.core.errors import NotFoundError
from app.models.letter import Letter
from app.models.submission_destination import SubmissionDestination

logger = logging.getLogger(__name__)

letters_router = APIRouter(prefix="/letters", tags=["letters"])


class DeleteAllResponse(BaseModel):
    deleted: int


class GenerateAllResponse(BaseModel):
    master: Letter
    destination_letters: list[Letter]


class LetterWithDestination(BaseModel):
    destination: SubmissionDestination
    letter: Letter | None


class LettersWithDestinationsResponse(BaseModel):
    master: Letter | None
    by_destination: list[LetterWithDestination]


@letters_router.post("/generate", response_model=Letter, status_code=201)
async def generate_letter(data: LetterGenerate, session: SessionDep) -> Letter:
    return letter_service.generate_letter(session, data)


@letters_router.post("/generate-all", response_model=GenerateAllResponse, status_code=201)
async def generate_all_letters(data: LetterGenerate, session: SessionDep) -> GenerateAllResponse:
    """Write the placeholder master and one tailored letter per destination."""
    return GenerateAllResponse(**letter_service.generate_all_letters(session, data))


@letters_router.get("/request/{request_id}", response_model=list[Letter])
async def list_letters(request_id: uuid.UUID, session: SessionDep) -> list[Letter]:
    return letter_service.list_letters_for_request(session, request_id)


@letters_router.delete("/request/{request_id}", response_model=DeleteAllResponse)
async def delete_all_letters(request_id: uuid.UUID, session: SessionDep) -> DeleteAllResponse:
    """Remove every letter of a request and send it back to SUBMITTED."""
    return DeleteAllResponse(deleted=letter_service.delete_all_letters_for_request(session, request_id))


@letters_router.get("/request/{request_id}/master", response_model=Letter)
async def get_master_letter(request_id: uuid.UUID, session: SessionDep) -> Letter:
    letter = letter_service.get_master_letter(session, request_id)
    if letter is None:
        raise NotFoundError("master_letter", request_id)
    return letter


@letters_router.get("/request/{request_id}/destination/{destination_id}", response_model=Letter)
async def get_destination_letter(
    request_id: uuid.UUID, destination_id: uuid.UUID, session: SessionDep
) -> Letter:
    letter = letter_service.get_letter_for_destination(session, request_id, destination_id)
    if letter is None:
        raise NotFoundError("letter", destination_id)
    return letter


@letters_router.post("/request/{request_id}/sync", response_model=list[Letter])
async def sync_master(request_id: uuid.UUID, session: SessionDep) -> list[Letter]:
    """Copy the master onto every destination, filling its placeholders."""
    return letter_service.sync_master_to_destinations(session, request_id)


@letters_router.get("/request/{request_id}/with-destinations", response_model=LettersWithDestinationsResponse)
async def letters_with_destinations(request_id: uuid.UUID, session: SessionDep) -> LettersWithDestinationsResponse:
    return LettersWithDestinationsResponse(**letter_service.get_letters_with_destinations(session, request_id))


@letters_router.get("/{letter_id}", response_model=Letter)
async def get_letter(letter_id: uuid.UUID, session: SessionDep) -> Letter:
    return letter_service.get_letter(session, letter_id)


@letters_router.put("/{letter_id}", response_model=Letter)
async def update_letter(letter_id: uuid.UUID, data: LetterUpdate, session: SessionDep) -> Letter:
    return letter_service.update_letter(session, letter_id, data)


@letters_router.post("/{letter_id}/finalize", response_model=Letter)
async def finalize_letter(letter_id: uuid.UUID, session: SessionDep) -> Letter:
    return letter_service.finalize_letter(session, letter_id)


@letters_router.post("/{letter_id}/unfinalize", response_model=Letter)
async def unfinalize_letter(letter_id: uuid.UUID, session: SessionDep) -> Letter:
    return letter_service.unfinalize_letter(session, letter_id)


@letters_router.delete("/{letter_id}", status_code=204)
async def delete_letter(letter_id: uuid.UUID, session: SessionDep) -> None:
    letter_service.delete_letter(session, letter_id)


@letters_router.get("/{letter_id}/pdf")
async def download_pdf(letter_id: uuid.UUID, session: SessionDep, renderer: RendererDep) -> FileResponse:
    """Serve the letter as PDF, rendering it first when missing or stale."""
    letter = letter_service.get_letter(session, letter_id)
    path = renderer.get_existing_artifact_path(letter.id) or renderer.render_artifact(letter.id)

    student_name = letter.request.student_name or "Student"
    return FileResponse(path, media_type="application/pdf", filename=attachment_filename(student_name))
