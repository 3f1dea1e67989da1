"""Access code generation and unique allocation.

Codes are 8 characters from an alphabet without visually confusable glyphs
(0/O, 1/I/L), so a student can read one off a printout and type it back.
``create_access_code`` knows nothing about uniqueness; callers allocate
through ``issue_unique_code``, which retries on collision a fixed number of
times and then gives up.
"""

import logging
import secrets
from typing import Callable, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.errors import CodeAllocationError
from app.models.letter_request import LetterRequest

logger = logging.getLogger(__name__)

ACCESS_CODE_ALPHABET = "23456789ABCDEFGHJKMNPQRSTUVWXYZ"
ACCESS_CODE_LENGTH = 8
MAX_CODE_ATTEMPTS = 10

T = TypeVar("T")


def create_access_code() -> str:
    """Return a random access code. Stateless and safe to call concurrently."""
    return "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(ACCESS_CODE_LENGTH))


def normalize_access_code(code: str) -> str:
    return code.strip().upper()


def code_in_use(session: Session, code: str) -> bool:
    statement = select(LetterRequest.id).where(LetterRequest.access_code == code)
    return session.exec(statement).first() is not None


def issue_unique_code(
    session: Session,
    persist: Callable[[str], T],
    max_attempts: int = MAX_CODE_ATTEMPTS,
    generate: Callable[[], str] = create_access_code,
) -> T:
    """Allocate a code nobody holds and hand it to ``persist``.

    ``persist`` must write and commit the code. The lookup only narrows the
    race between two concurrent issuances; the unique index on
    ``letter_requests.access_code`` is the real guard, so an IntegrityError
    on commit is treated as one more collision.

    Args:
        session: Database session used for the lookup and rolled back on a
            constraint violation
        persist: Callback that stores the code and returns the saved entity
        max_attempts: Upper bound on generated candidates
        generate: Code generator, swappable in tests

    Returns:
        Whatever ``persist`` returns

    Raises:
        CodeAllocationError: If every candidate collided
    """
    for attempt in range(1, max_attempts + 1):
        code = generate()

        if code_in_use(session, code):
            logger.warning("Access code collision on lookup", extra={"attempt": attempt})
            continue

        try:
            return persist(code)
        except IntegrityError:
            session.rollback()
            logger.warning("Access code collision on insert", extra={"attempt": attempt})

    logger.error("Exhausted access code attempts", extra={"attempts": max_attempts})
    raise CodeAllocationError(max_attempts)
