"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends
from sqlmodel import Session

from app.core.config import settings
from app.core.db import get_session
from app.integrations.mail_transport import MailTransport, build_transport
from app.integrations.pdf_renderer import LetterRenderer, ReportLabLetterRenderer

SessionDep = Annotated[Session, Depends(get_session)]


def get_transport() -> MailTransport:
    return build_transport(settings)


def get_renderer(session: SessionDep) -> LetterRenderer:
    return ReportLabLetterRenderer(session, settings.PDF_DIR)


TransportDep = Annotated[MailTransport, Depends(get_transport)]
RendererDep = Annotated[LetterRenderer, Depends(get_renderer)]
