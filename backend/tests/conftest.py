"""Pytest configuration and shared fixtures."""

import os
from pathlib import Path
from typing import Any, Callable, Generator
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

# Set test environment variables before importing app
os.environ.update({
    "DATABASE_URL": "sqlite://",
    "MAIL_TRANSPORT": "smtp",
    "SMTP_HOST": "smtp.test.local",
    "SMTP_USER": "letters@test.local",
    "MAIL_FROM_NAME": "Recommate Test",
    "OTEL_TRACES_EXPORTER": "none",
})

from app.core.db import build_engine  # noqa: E402
from app.models.letter import Letter  # noqa: E402
from app.models.letter_request import LetterRequest, RequestStatus  # noqa: E402
from app.models.professor import Professor  # noqa: E402
from app.models.submission_destination import (  # noqa: E402
    SubmissionDestination,
    SubmissionMethod,
    SubmissionStatus,
)
from app.models.template import Template  # noqa: E402


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Fresh in-memory database per test."""
    test_engine = build_engine("sqlite://", poolclass=StaticPool)
    SQLModel.metadata.create_all(test_engine)
    yield test_engine
    SQLModel.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture
def session(engine: Engine) -> Generator[Session, None, None]:
    with Session(engine) as db_session:
        yield db_session


@pytest.fixture
def storage_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, Path]:
    """Point upload and PDF storage at a per-test directory."""
    from app.core.config import settings

    upload_dir = tmp_path / "uploads"
    pdf_dir = tmp_path / "pdfs"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(upload_dir))
    monkeypatch.setattr(settings, "PDF_DIR", str(pdf_dir))
    return {"uploads": upload_dir, "pdfs": pdf_dir}


@pytest.fixture
def mock_transport() -> AsyncMock:
    transport = AsyncMock()
    transport.send = AsyncMock(return_value=None)
    return transport


@pytest.fixture
def client(
    engine: Engine,
    storage_dirs: dict[str, Path],
    mock_transport: AsyncMock,
) -> Generator[TestClient, None, None]:
    """FastAPI test client bound to the in-memory database and a mocked transport."""
    from app.api.deps import get_transport
    from app.core.db import get_session
    from app.main import app

    def override_session():
        with Session(engine) as db_session:
            yield db_session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_transport] = lambda: mock_transport

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def make_request(session: Session) -> Callable[..., LetterRequest]:
    """Factory for requests with optional destinations in given statuses."""
    counter = {"n": 0}

    def _make(
        status: RequestStatus = RequestStatus.PENDING,
        destinations: list[tuple[SubmissionMethod, SubmissionStatus]] | None = None,
        **fields: Any,
    ) -> LetterRequest:
        counter["n"] += 1
        request = LetterRequest(
            access_code=fields.pop("access_code", f"TEST{counter['n']:04d}"),
            status=status,
            **fields,
        )
        session.add(request)
        session.flush()

        for index, (method, destination_status) in enumerate(destinations or []):
            session.add(
                SubmissionDestination(
                    request_id=request.id,
                    institution_name=f"University {index + 1}",
                    program_name="PhD in Computer Science",
                    recipient_name="Graduate Office",
                    recipient_email="admissions@university.test" if method == SubmissionMethod.EMAIL else None,
                    method=method,
                    status=destination_status,
                )
            )

        session.commit()
        session.refresh(request)
        return request

    return _make


@pytest.fixture
def professor(session: Session) -> Professor:
    prof = Professor(
        email="quinn@state.test",
        name="Dr. Avery Quinn",
        title="Associate Professor",
        department="Computer Science",
        institution="State University",
    )
    session.add(prof)
    session.commit()
    session.refresh(prof)
    return prof


@pytest.fixture
def template(session: Session) -> Template:
    tmpl = Template(
        name="Graduate Admissions",
        content="Dear Committee, I recommend {{ student_name }} for {{ program }}. {{ professor_name }}",
        variables=[{"name": "student_name"}, {"name": "program"}, {"name": "professor_name"}],
        is_default=True,
    )
    session.add(tmpl)
    session.commit()
    session.refresh(tmpl)
    return tmpl


@pytest.fixture
def make_letter(session: Session) -> Callable[..., Letter]:
    def _make(request: LetterRequest, content: str = "Letter body", **fields: Any) -> Letter:
        letter = Letter(request_id=request.id, content=content, **fields)
        session.add(letter)
        session.commit()
        session.refresh(letter)
        return letter

    return _make
