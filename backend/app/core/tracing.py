"""
OpenTelemetry tracing configuration and utilities for the Recommate backend.

Spans cover the outbound critical path:
- Letter dispatch
- SMTP and Gmail API sends
- PDF rendering

Recipient addresses, access codes, tokens and letter text are masked before
they reach a span.
"""

import os
import re
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

SERVICE_VERSION = "0.1.0"

SECRET_KEYS = ("token", "secret", "password", "api_key")
CODE_KEYS = ("access_code",)
TEXT_KEYS = ("body", "content", "subject", "text", "html")


def setup_tracing(service_name: str = "recommate-backend") -> TracerProvider:
    """
    Initialize OpenTelemetry tracing.

    Environment variables:
    - OTEL_TRACES_EXPORTER: "otlp", "console", or "none" (default: console)
    - OTEL_EXPORTER_OTLP_ENDPOINT: OTLP collector endpoint (default: http://localhost:4317)

    Args:
        service_name: Name of the service for trace identification

    Returns:
        Configured TracerProvider
    """
    resource = Resource.create({"service.name": service_name, "service.version": SERVICE_VERSION})
    provider = TracerProvider(resource=resource)

    exporter_type = os.getenv("OTEL_TRACES_EXPORTER", "console").lower()
    if exporter_type == "otlp":
        endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True)))
    elif exporter_type == "console":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    return provider


def get_tracer(name: str = __name__) -> trace.Tracer:
    """Get a tracer instance for creating spans."""
    return trace.get_tracer(name)


def mask_token(token: str | None) -> str:
    """Keep the first 8 and last 4 characters of a credential."""
    if not token:
        return "<none>"

    if len(token) <= 12:
        return "***"

    return f"{token[:8]}...{token[-4:]}"


def mask_access_code(code: str | None) -> str:
    """
    Mask a student access code.

    Codes are bearer credentials for the student surface, so only the first
    two characters survive: ``AB******``.
    """
    if not code:
        return "<none>"

    return code[:2] + "*" * max(len(code) - 2, 0)


def mask_email(email: str | None) -> str:
    """
    Mask an email address for PII protection.

    Shows first character and domain, masks the rest.
    """
    if not email:
        return "<none>"

    match = re.match(r"^([^@])([^@]*)(@.+)$", email)
    if match:
        first_char, rest, domain = match.groups()
        return f"{first_char}{'*' * min(len(rest), 5)}{domain}"

    return "***@***"


def sanitize_letter_text(content: str | None, max_length: int = 100) -> str:
    """
    Truncate letter or e-mail text for a span.

    Long unbroken runs that look like tokens are replaced.
    """
    if not content:
        return "<empty>"

    if len(content) > max_length:
        content = content[:max_length] + "..."

    return re.sub(r"[A-Za-z0-9_-]{40,}", "***TOKEN***", content)


def safe_span_attributes(**kwargs: Any) -> dict[str, Any]:
    """
    Create span attributes with automatic sanitization.

    Keys are matched by name:
    - token, secret, password, api_key -> masked credential
    - access_code -> masked code
    - anything containing "email" -> masked address
    - body, content, subject, text, html -> truncated text

    None values are dropped; non-primitive values are stringified.
    """
    sanitized = {}

    for key, value in kwargs.items():
        if value is None:
            continue

        lowered = key.lower()
        if any(secret in lowered for secret in SECRET_KEYS):
            sanitized[key] = mask_token(str(value))
        elif lowered in CODE_KEYS:
            sanitized[key] = mask_access_code(str(value))
        elif "email" in lowered:
            sanitized[key] = mask_email(str(value))
        elif any(text_key in lowered for text_key in TEXT_KEYS):
            sanitized[key] = sanitize_letter_text(str(value))
        elif isinstance(value, (str, int, float, bool)):
            sanitized[key] = value
        else:
            sanitized[key] = str(value)

    return sanitized
