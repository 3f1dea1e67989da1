"""Upload validation for student documents.

Declared MIME types and filenames come from the client and are never
trusted on their own. Validation runs in two phases:

1. Ingress: the declared MIME must be on the allow-list (otherwise the whole
   batch is rejected with an error), then each file is written under a
   per-request directory with a random name.
2. Content sniffing: the leading bytes must match a known signature whose
   type agrees with the declared MIME. Files that fail are deleted and
   reported by their original name.
"""

import logging
import os
import re
import secrets
from pathlib import Path
from typing import Iterable, NamedTuple

from app.core.errors import DisallowedFileTypeError, FileTooLargeError, ValidationFailure

logger = logging.getLogger(__name__)


class FileTypeRule(NamedTuple):
    """Acceptable declared MIME strings and content signatures for one logical type."""
    mimes: tuple[str, ...]
    signatures: tuple[bytes, ...]


ALLOWED_TYPES: dict[str, FileTypeRule] = {
    "pdf": FileTypeRule(
        mimes=("application/pdf",),
        signatures=(b"\x25\x50\x44\x46",),  # %PDF
    ),
    "doc": FileTypeRule(
        mimes=("application/msword",),
        signatures=(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1",),  # OLE compound file
    ),
    "docx": FileTypeRule(
        mimes=("application/vnd.openxmlformats-officedocument.wordprocessingml.document",),
        signatures=(b"\x50\x4b\x03\x04",),  # ZIP container
    ),
    "png": FileTypeRule(
        mimes=("image/png",),
        signatures=(b"\x89\x50\x4e\x47\x0d\x0a\x1a\x0a",),
    ),
    "jpg": FileTypeRule(
        mimes=("image/jpeg",),
        signatures=(b"\xff\xd8\xff",),
    ),
    "gif": FileTypeRule(
        mimes=("image/gif",),
        signatures=(b"GIF87a", b"GIF89a"),
    ),
}

ALLOWED_MIMES: frozenset[str] = frozenset(
    mime for rule in ALLOWED_TYPES.values() for mime in rule.mimes
)

SNIFF_LENGTH = max(len(sig) for rule in ALLOWED_TYPES.values() for sig in rule.signatures)
STORED_NAME_TOKEN_BYTES = 12  # token_urlsafe(12) -> 16 characters

_SAFE_EXTENSION = re.compile(r"^\.[a-z0-9]{1,10}$")


class IncomingFile(NamedTuple):
    """A file as received from the client."""
    filename: str
    content_type: str | None
    data: bytes


class StoredUpload(NamedTuple):
    """A file written to scratch storage, pending content validation."""
    original_name: str
    stored_name: str
    mime_type: str
    size: int
    path: str


class UploadBatchResult(NamedTuple):
    valid: list[StoredUpload]
    invalid: list[str]


def canonical_mime(kind: str) -> str:
    return ALLOWED_TYPES[kind].mimes[0]


def check_declared_type(filename: str, content_type: str | None) -> None:
    """Reject a file whose declared MIME type is not on the allow-list."""
    if content_type not in ALLOWED_MIMES:
        logger.warning(
            "Rejected upload with disallowed type",
            extra={"upload_name": filename, "mime_type": content_type},
        )
        raise DisallowedFileTypeError(filename, content_type)


def check_batch(files: list[IncomingFile], max_file_size: int, max_files: int) -> None:
    """Run every ingress check before any byte is written."""
    if len(files) > max_files:
        raise ValidationFailure(
            f"Too many files: at most {max_files} per upload",
            error_code="too_many_files",
            context={"count": len(files), "limit": max_files},
        )

    for file in files:
        check_declared_type(file.filename, file.content_type)
        if len(file.data) > max_file_size:
            raise FileTooLargeError(file.filename, len(file.data), max_file_size)


def stored_name_for(original_name: str) -> str:
    """Random storage name keeping only a sane, lower-cased extension."""
    extension = Path(original_name).suffix.lower()
    if not _SAFE_EXTENSION.match(extension):
        extension = ""
    return f"{secrets.token_urlsafe(STORED_NAME_TOKEN_BYTES)}{extension}"


def store_upload(file: IncomingFile, destination_dir: Path) -> StoredUpload:
    destination_dir.mkdir(parents=True, exist_ok=True)

    stored_name = stored_name_for(file.filename)
    path = destination_dir / stored_name
    path.write_bytes(file.data)

    return StoredUpload(
        original_name=file.filename,
        stored_name=stored_name,
        mime_type=file.content_type or "",
        size=len(file.data),
        path=str(path),
    )


def sniff_file_type(path: str | os.PathLike) -> str | None:
    """Return the logical type whose signature prefixes the file, or None."""
    with open(path, "rb") as fh:
        head = fh.read(SNIFF_LENGTH)

    for kind, rule in ALLOWED_TYPES.items():
        if any(head.startswith(signature) for signature in rule.signatures):
            return kind
    return None


def validate_file_content(path: str | os.PathLike, declared_mime: str) -> bool:
    """Check that the file's bytes agree with its declared type.

    Unrecognized content is invalid, never assumed valid.
    """
    try:
        kind = sniff_file_type(path)
    except OSError as e:
        logger.warning("Could not read upload for sniffing", extra={"path": str(path), "error": str(e)})
        return False

    if kind is None:
        return False

    if canonical_mime(kind) not in ALLOWED_MIMES:
        return False

    return declared_mime in ALLOWED_TYPES[kind].mimes


def delete_file(path: str | os.PathLike) -> None:
    """Remove a stored file. Missing files and OS errors are ignored."""
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Failed to delete file", extra={"path": str(path), "error": str(e)})


def validate_uploaded_files(uploads: Iterable[StoredUpload]) -> UploadBatchResult:
    """Partition stored uploads into valid files and invalid original names.

    Input order is preserved within both lists. Invalid files are deleted.
    """
    valid: list[StoredUpload] = []
    invalid: list[str] = []

    for upload in uploads:
        if validate_file_content(upload.path, upload.mime_type):
            valid.append(upload)
        else:
            delete_file(upload.path)
            invalid.append(upload.original_name)

    if invalid:
        logger.info(
            "Uploads rejected after content sniffing",
            extra={"invalid_count": len(invalid), "valid_count": len(valid)},
        )

    return UploadBatchResult(valid=valid, invalid=invalid)


def accept_uploads(
    files: list[IncomingFile],
    upload_dir: str | os.PathLike,
    request_code: str,
    max_file_size: int,
    max_files: int,
) -> UploadBatchResult:
    """Run both validation phases for one request's batch.

    Args:
        files: Files as received, in client order
        upload_dir: Root of upload storage
        request_code: Access code naming the per-request subdirectory
        max_file_size: Per-file byte limit
        max_files: Per-batch file limit

    Returns:
        UploadBatchResult with stored valid files and invalid original names

    Raises:
        DisallowedFileTypeError: If any declared MIME is not allowed
        FileTooLargeError: If any file exceeds ``max_file_size``
        ValidationFailure: If the batch holds more than ``max_files`` files
    """
    check_batch(files, max_file_size, max_files)

    destination_dir = Path(upload_dir) / request_code
    stored: list[StoredUpload] = []
    try:
        for file in files:
            stored.append(store_upload(file, destination_dir))
    except OSError:
        for upload in stored:
            delete_file(upload.path)
        raise

    return validate_uploaded_files(stored)
