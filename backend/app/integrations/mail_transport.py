"""Outgoing mail transports.

Two interchangeable transports deliver a composed letter email:

- ``SmtpTransport`` talks to an SMTP relay through aiosmtplib
- ``GmailApiTransport`` posts a raw MIME message to the Gmail API

Both raise ``MailTransportError`` with the underlying error text so the
dispatch workflow can record it on the destination.
"""

import asyncio
import base64
import logging
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from pathlib import Path
from typing import NamedTuple, Protocol

import aiosmtplib
import httpx
from opentelemetry.trace import Status, StatusCode
from pydantic import BaseModel, Field

from app.core.config import Settings
from app.core.tracing import get_tracer, safe_span_attributes

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

GMAIL_SEND_URL = "https://gmail.googleapis.com/gmail/v1/users/me/messages/send"


class MailTransportError(Exception):
    """Raised when a transport could not hand the message over."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class Attachment(NamedTuple):
    filename: str
    path: str
    content_type: str = "application/pdf"


class OutgoingMessage(BaseModel):
    from_name: str
    from_address: str
    to: str
    subject: str
    text: str
    html: str
    attachments: list[Attachment] = Field(default_factory=list)


class MailTransport(Protocol):
    async def send(self, message: OutgoingMessage) -> None: ...


def build_mime_message(message: OutgoingMessage) -> MIMEMultipart:
    """Build a multipart/mixed message with text + HTML bodies and file attachments."""
    mime = MIMEMultipart("mixed")
    mime["From"] = formataddr((message.from_name, message.from_address))
    mime["To"] = message.to
    mime["Subject"] = message.subject

    body = MIMEMultipart("alternative")
    body.attach(MIMEText(message.text, "plain", "utf-8"))
    body.attach(MIMEText(message.html, "html", "utf-8"))
    mime.attach(body)

    for attachment in message.attachments:
        maintype, _, subtype = attachment.content_type.partition("/")
        part = MIMEApplication(Path(attachment.path).read_bytes(), _subtype=subtype or "octet-stream")
        part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
        mime.attach(part)

    return mime


class SmtpTransport:
    def __init__(
        self,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        use_tls: bool = False,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    async def send(self, message: OutgoingMessage) -> None:
        with tracer.start_as_current_span("mail.smtp.send") as span:
            span.set_attributes(safe_span_attributes(
                recipient_email=message.to,
                smtp_host=self.host,
                attachment_count=len(message.attachments),
            ))

            try:
                await aiosmtplib.send(
                    build_mime_message(message),
                    hostname=self.host,
                    port=self.port,
                    username=self.username or None,
                    password=self.password or None,
                    use_tls=self.use_tls,
                    timeout=self.timeout,
                )
            except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as e:
                reason = str(e) or type(e).__name__
                logger.error(
                    "SMTP send failed",
                    extra={"smtp_host": self.host, "error": reason},
                )
                span.set_status(Status(StatusCode.ERROR, type(e).__name__))
                raise MailTransportError(reason) from e

            span.set_status(Status(StatusCode.OK))
            logger.info("Email sent via SMTP", extra={"smtp_host": self.host})


class GmailApiTransport:
    def __init__(self, access_token: str, timeout: float = 20.0):
        self.access_token = access_token
        self.timeout = timeout

    async def send(self, message: OutgoingMessage) -> None:
        with tracer.start_as_current_span("mail.gmail.send") as span:
            span.set_attributes(safe_span_attributes(
                recipient_email=message.to,
                access_token=self.access_token,
                attachment_count=len(message.attachments),
            ))

            raw = base64.urlsafe_b64encode(build_mime_message(message).as_bytes()).decode("utf-8")

            try:
                async with httpx.AsyncClient() as client:
                    response = await client.post(
                        GMAIL_SEND_URL,
                        headers={
                            "Authorization": f"Bearer {self.access_token}",
                            "Content-Type": "application/json",
                            "Accept": "application/json",
                        },
                        json={"raw": raw},
                        timeout=self.timeout,
                    )
            except httpx.TimeoutException as e:
                logger.error("Gmail API timeout sending message")
                span.set_status(Status(StatusCode.ERROR, "Timeout"))
                raise MailTransportError("Gmail API request timeout") from e
            except httpx.RequestError as e:
                logger.error("Gmail API network error sending message", extra={"error": str(e)})
                span.set_status(Status(StatusCode.ERROR, "Network error"))
                raise MailTransportError(f"Unable to connect to Gmail API: {e}") from e

            if response.status_code == 401:
                span.set_status(Status(StatusCode.ERROR, "Unauthorized"))
                raise MailTransportError("Gmail authorization expired")

            if response.status_code >= 400:
                error_data = response.json() if response.content else {}
                error_message = error_data.get("error", {}).get("message", "Unknown error")
                logger.error(
                    "Gmail API error sending message",
                    extra={"status_code": response.status_code, "error": error_message},
                )
                span.set_status(Status(StatusCode.ERROR, f"HTTP {response.status_code}"))
                raise MailTransportError(f"Gmail API error {response.status_code}: {error_message}")

            message_id = response.json().get("id", "")
            span.set_attribute("gmail_message_id", message_id)
            span.set_status(Status(StatusCode.OK))
            logger.info("Email sent via Gmail API", extra={"gmail_message_id": message_id})


def build_transport(settings: Settings) -> MailTransport:
    if settings.MAIL_TRANSPORT == "gmail":
        return GmailApiTransport(access_token=settings.GMAIL_ACCESS_TOKEN)
    return SmtpTransport(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_USE_TLS,
        timeout=settings.SMTP_TIMEOUT,
    )
