"""
Failure taxonomy for upload processing and result retrieval.

Every error carries the HTTP status the façade should answer with, so the
processing and storage layers can raise without knowing about FastAPI.
"""

from __future__ import annotations


class ExtractionError(Exception):
    """Base class for all failures surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailure(ExtractionError):
    """The request itself is unacceptable (empty file, wrong type, bad id)."""

    status_code = 400


class UploadTooLarge(ValidationFailure):
    status_code = 413


class NotFound(ExtractionError):
    """Unknown upload, unknown image, or a path that escapes the store root."""

    status_code = 404


class ParseFailure(ExtractionError):
    """The extraction library could not open or read the document."""

    status_code = 500


class StorageFailure(ExtractionError):
    """Disk I/O failed, or the target upload directory already exists."""

    status_code = 500


class ImageDecodeError(Exception):
    """A single embedded image could not be decoded; the upload continues."""
