"""Professor profile endpoints."""

import logging

from fastapi import APIRouter

from app.api.deps import SessionDep
from app.core.errors import NotFoundError
from app.fulfillment.profile import get_professor, save_professor
from app.fulfillment.schemas import ProfessorUpdate
from app.models.professor import Professor

logger = logging.getLogger(__name__)

professor_router = APIRouter(prefix="/professor", tags=["professor"])


@professor_router.get("", response_model=Professor)
async def get_profile(session: SessionDep) -> Professor:
    professor = get_professor(session)
    if professor is None:
        raise NotFoundError("professor", "profile")
    return professor


@professor_router.put("", response_model=Professor)
async def update_profile(patch: ProfessorUpdate, session: SessionDep) -> Professor:
    """Create the profile on first save, then patch it."""
    return save_professor(session, patch)
