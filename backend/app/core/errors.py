"""Error taxonomy for the request fulfillment engine.

Every error carries an HTTP-ish status code, a stable ``error_code`` and a
``context`` dict naming the entity and constraint involved, so the API layer
can render a response without inspecting messages.
"""

from typing import Any


class FulfillmentError(Exception):
    """Base exception for fulfillment engine errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "fulfillment_error",
        context: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.context = context or {}
        super().__init__(self.message)


# --- NotFound -------------------------------------------------------------


class NotFoundError(FulfillmentError):
    """Raised when a request, destination, template, letter or document is absent."""

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            message=f"{entity.replace('_', ' ').capitalize()} not found",
            status_code=404,
            error_code=f"{entity}_not_found",
            context={"entity": entity, "entity_id": str(entity_id)},
        )


# --- Conflict -------------------------------------------------------------


class ConflictError(FulfillmentError):
    def __init__(self, message: str, error_code: str = "conflict", context: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=409, error_code=error_code, context=context)


class CodeAllocationError(ConflictError):
    """Raised when no unique access code could be allocated within the allowed attempts."""

    def __init__(self, attempts: int):
        super().__init__(
            message="Failed to generate unique access code",
            error_code="code_allocation_exhausted",
            context={"attempts": attempts},
        )


# --- ValidationFailure ----------------------------------------------------


class ValidationFailure(FulfillmentError):
    def __init__(self, message: str, error_code: str = "validation_failure", context: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=400, error_code=error_code, context=context)


class DisallowedFileTypeError(ValidationFailure):
    def __init__(self, filename: str, mime_type: str | None):
        super().__init__(
            message=f"File type {mime_type} is not allowed",
            error_code="file_type_not_allowed",
            context={"filename": filename, "mime_type": mime_type},
        )


class FileTooLargeError(ValidationFailure):
    def __init__(self, filename: str, size: int, limit: int):
        super().__init__(
            message=f"File {filename} exceeds the {limit} byte limit",
            error_code="file_too_large",
            context={"filename": filename, "size": size, "limit": limit},
        )


class MissingRecipientError(ValidationFailure):
    def __init__(self, destination_id: Any):
        super().__init__(
            message="Destination has no recipient email",
            error_code="missing_recipient_email",
            context={"destination_id": str(destination_id)},
        )


class IncompleteSubmissionError(ValidationFailure):
    def __init__(self, message: str, missing: list[str]):
        super().__init__(message=message, error_code="incomplete_submission", context={"missing": missing})


# --- PreconditionFailure --------------------------------------------------


class PreconditionFailure(FulfillmentError):
    def __init__(
        self,
        message: str,
        error_code: str = "precondition_failed",
        context: dict[str, Any] | None = None,
        status_code: int = 400,
    ):
        super().__init__(message=message, status_code=status_code, error_code=error_code, context=context)


class DestinationMismatchError(PreconditionFailure):
    def __init__(self, destination_id: Any, request_id: Any):
        super().__init__(
            message="Destination does not belong to this request",
            error_code="destination_request_mismatch",
            context={"destination_id": str(destination_id), "request_id": str(request_id)},
        )


class WrongMethodError(PreconditionFailure):
    def __init__(self, destination_id: Any, method: str, expected: str):
        super().__init__(
            message=f"Destination is not configured for {expected.lower()}",
            error_code="wrong_submission_method",
            context={"destination_id": str(destination_id), "method": method, "expected": expected},
        )


class InvalidTransitionError(PreconditionFailure):
    def __init__(self, destination_id: Any, current: str, target: str):
        super().__init__(
            message=f"Cannot move destination from {current} to {target}",
            error_code="invalid_status_transition",
            context={"destination_id": str(destination_id), "current": current, "target": target},
        )


class LetterFinalizedError(PreconditionFailure):
    def __init__(self, letter_id: Any, finalized: bool = True):
        super().__init__(
            message="Cannot edit a finalized letter" if finalized else "Letter is not finalized",
            error_code="letter_finalized" if finalized else "letter_not_finalized",
            context={"letter_id": str(letter_id)},
        )


class RequestNotReadyError(PreconditionFailure):
    def __init__(self, request_id: Any, status: str):
        super().__init__(
            message="Request must be submitted before generating a letter",
            error_code="request_not_ready",
            context={"request_id": str(request_id), "status": status},
        )


class AccessDeniedError(PreconditionFailure):
    """Raised when a student uses a code whose request no longer accepts changes."""

    def __init__(self, status: str, reason: str):
        super().__init__(
            message="Request not found or no longer accepting submissions",
            error_code="access_denied",
            context={"status": status, "reason": reason},
            status_code=403,
        )


# --- TransportFailure -----------------------------------------------------


class TransportFailure(FulfillmentError):
    """Raised after a send failure has been recorded on the destination."""

    def __init__(self, destination_id: Any, reason: str):
        super().__init__(
            message=f"Failed to send email: {reason}",
            status_code=502,
            error_code="transport_failure",
            context={"destination_id": str(destination_id), "failure_reason": reason},
        )
