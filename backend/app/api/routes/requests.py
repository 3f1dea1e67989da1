"""Professor-side endpoints for letter requests."""

import logging
import uuid

from fastapi import APIRouter, Query
from pydantic import BaseModel

from app.api.deps import SessionDep
from app.fulfillment import requests as request_service
from app.fulfillment.schemas import RequestCreate, RequestUpdate, StatusUpdate
from app.models.document import Document
from app.models.letter import Letter
from app.models.letter_request import LetterRequest, RequestStatus
from app.models.submission_destination import SubmissionDestination

logger = logging.getLogger(__name__)

requests_router = APIRouter(prefix="/requests", tags=["requests"])


class RequestListResponse(BaseModel):
    items: list[LetterRequest]
    total: int
    limit: int
    offset: int


class RequestDetailResponse(BaseModel):
    request: LetterRequest
    documents: list[Document]
    destinations: list[SubmissionDestination]
    letters: list[Letter]


class RequestStatsResponse(BaseModel):
    total: int
    pending: int
    submitted: int
    in_progress: int
    completed: int
    upcoming_deadlines: list[LetterRequest]


@requests_router.get("", response_model=RequestListResponse)
async def list_requests(
    session: SessionDep,
    status: RequestStatus | None = None,
    search: str | None = None,
    limit: int = Query(request_service.DEFAULT_PAGE_SIZE, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> RequestListResponse:
    items, total = request_service.list_requests(session, status, search, limit, offset)
    return RequestListResponse(items=items, total=total, limit=limit, offset=offset)


@requests_router.get("/stats", response_model=RequestStatsResponse)
async def get_stats(session: SessionDep) -> RequestStatsResponse:
    return RequestStatsResponse(**request_service.get_request_stats(session))


@requests_router.post("", response_model=LetterRequest, status_code=201)
async def create_request(data: RequestCreate, session: SessionDep) -> LetterRequest:
    """Open a request and issue its access code."""
    return request_service.create_request(session, data)


@requests_router.get("/{request_id}", response_model=RequestDetailResponse)
async def get_request(request_id: uuid.UUID, session: SessionDep) -> RequestDetailResponse:
    request = request_service.get_request(session, request_id)
    return RequestDetailResponse(
        request=request,
        documents=request.documents,
        destinations=request.destinations,
        letters=request.letters,
    )


@requests_router.patch("/{request_id}", response_model=LetterRequest)
async def update_request(request_id: uuid.UUID, patch: RequestUpdate, session: SessionDep) -> LetterRequest:
    return request_service.update_request(session, request_id, patch)


@requests_router.put("/{request_id}/status", response_model=LetterRequest)
async def set_status(request_id: uuid.UUID, data: StatusUpdate, session: SessionDep) -> LetterRequest:
    return request_service.set_status(session, request_id, data.status)


@requests_router.post("/{request_id}/regenerate-code", response_model=LetterRequest)
async def regenerate_code(request_id: uuid.UUID, session: SessionDep) -> LetterRequest:
    return request_service.regenerate_access_code(session, request_id)


@requests_router.delete("/{request_id}", status_code=204)
async def delete_request(request_id: uuid.UUID, session: SessionDep) -> None:
    request_service.delete_request(session, request_id)
