"""PDF rendering for letters.

Letters are laid out on US Letter paper with 1 inch margins under a
letterhead built from the professor profile. A rendered file is reused as
long as it is newer than the letter's last edit.
"""

import logging
import secrets
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer
from sqlmodel import Session

from app.core.errors import NotFoundError
from app.core.tracing import get_tracer
from app.fulfillment.profile import get_professor
from app.fulfillment.uploads import delete_file
from app.models.letter import Letter
from app.models.professor import Professor

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)


class LetterRenderer(Protocol):
    def get_existing_artifact_path(self, letter_id: uuid.UUID) -> str | None: ...

    def render_artifact(self, letter_id: uuid.UUID) -> str: ...


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def split_paragraphs(content: str) -> list[str]:
    """Split letter text on blank lines, keeping single line breaks inside a paragraph."""
    blocks = [block.strip() for block in content.replace("\r\n", "\n").split("\n\n")]
    return [block for block in blocks if block]


def letterhead_lines(professor: Professor | None) -> list[str]:
    if professor is None or not professor.name:
        return []
    lines = [professor.name]
    lines += [value for value in (professor.title, professor.department, professor.institution) if value]
    return lines


class ReportLabLetterRenderer:
    def __init__(self, session: Session, pdf_dir: str):
        self.session = session
        self.pdf_dir = Path(pdf_dir)

        styles = getSampleStyleSheet()
        self.name_style = ParagraphStyle(
            "LetterheadName",
            parent=styles["Heading1"],
            fontName="Times-Bold",
            fontSize=18,
            alignment=TA_CENTER,
            spaceAfter=4,
        )
        self.detail_style = ParagraphStyle(
            "LetterheadDetail",
            parent=styles["Normal"],
            fontName="Times-Roman",
            fontSize=10,
            alignment=TA_CENTER,
            textColor=colors.HexColor("#555555"),
        )
        self.body_style = ParagraphStyle(
            "LetterBody",
            parent=styles["Normal"],
            fontName="Times-Roman",
            fontSize=12,
            leading=19,
            alignment=TA_JUSTIFY,
            spaceAfter=12,
        )

    def _get_letter(self, letter_id: uuid.UUID) -> Letter:
        letter = self.session.get(Letter, letter_id)
        if letter is None:
            raise NotFoundError("letter", letter_id)
        return letter

    def get_existing_artifact_path(self, letter_id: uuid.UUID) -> str | None:
        """Path of a rendered PDF that still matches the letter, else None."""
        letter = self._get_letter(letter_id)
        if not letter.pdf_path or letter.pdf_generated_at is None:
            return None
        if not Path(letter.pdf_path).is_file():
            return None
        if _as_utc(letter.pdf_generated_at) < _as_utc(letter.updated_at):
            return None
        return letter.pdf_path

    def build_story(self, content: str, professor: Professor | None) -> list:
        story = []

        header = letterhead_lines(professor)
        if header:
            story.append(Paragraph(escape(header[0]), self.name_style))
            for line in header[1:]:
                story.append(Paragraph(escape(line), self.detail_style))
            story.append(Spacer(1, 0.1 * inch))
            story.append(HRFlowable(width="100%", thickness=2, color=colors.HexColor("#333333")))
            story.append(Spacer(1, 0.3 * inch))

        for block in split_paragraphs(content):
            story.append(Paragraph(escape(block).replace("\n", "<br/>"), self.body_style))

        return story

    def render_artifact(self, letter_id: uuid.UUID) -> str:
        with tracer.start_as_current_span("letter.render_pdf") as span:
            span.set_attribute("letter_id", str(letter_id))

            letter = self._get_letter(letter_id)
            previous_path = letter.pdf_path

            self.pdf_dir.mkdir(parents=True, exist_ok=True)
            path = self.pdf_dir / f"letter-{letter.request_id}-{secrets.token_urlsafe(6)}.pdf"

            doc = SimpleDocTemplate(
                str(path),
                pagesize=LETTER,
                leftMargin=inch,
                rightMargin=inch,
                topMargin=inch,
                bottomMargin=inch,
                title="Letter of Recommendation",
            )
            doc.build(self.build_story(letter.content, get_professor(self.session)))

            letter.pdf_path = str(path)
            letter.pdf_generated_at = datetime.now(timezone.utc)
            self.session.add(letter)
            self.session.commit()

            if previous_path and previous_path != str(path):
                delete_file(previous_path)

            logger.info("Letter PDF rendered", extra={"letter_id": str(letter_id)})
            return str(path)
