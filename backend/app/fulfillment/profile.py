"""Professor profile used for letterheads and outgoing mail."""

import logging
from datetime import datetime, timezone

from sqlmodel import Session, col, select

from app.core.errors import ValidationFailure
from app.fulfillment.schemas import ProfessorUpdate, apply_patch
from app.models.professor import Professor

logger = logging.getLogger(__name__)


def get_professor(session: Session) -> Professor | None:
    """The letter writer. Single-professor deployments keep exactly one row."""
    return session.exec(select(Professor).order_by(col(Professor.created_at).asc())).first()


def save_professor(session: Session, patch: ProfessorUpdate) -> Professor:
    professor = get_professor(session)

    if professor is None:
        if patch.email is None or patch.name is None:
            raise ValidationFailure(
                "Name and email are required to create the professor profile",
                error_code="incomplete_profile",
            )
        professor = Professor(email=patch.email, name=patch.name)

    changed = apply_patch(professor, patch)
    professor.updated_at = datetime.now(timezone.utc)
    session.add(professor)
    session.commit()
    session.refresh(professor)

    logger.info("Professor profile saved", extra={"fields": sorted(changed)})
    return professor
