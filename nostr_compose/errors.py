"""Upload error types.

Every failure of an inline attachment upload is one of four kinds:
- invalid-encoding: the response body is not valid UTF-8
- url-not-found: the response text contains no hosted URL
- transport-failure: connection error, timeout or non-success status
- missing-metadata: the selection has no MIME type, extension or readable bytes

Each kind has its own exception class so callers can tell them apart,
while the coordinator handles all of them the same way.
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar


class UploadErrorKind(Enum):
    """Tag identifying the category of an upload failure."""

    INVALID_ENCODING = "invalid-encoding"
    URL_NOT_FOUND = "url-not-found"
    TRANSPORT_FAILURE = "transport-failure"
    MISSING_METADATA = "missing-metadata"


class UploadError(Exception):
    """Base class for attachment upload failures."""

    kind: ClassVar[UploadErrorKind]


class InvalidEncodingError(UploadError):
    """Raised when the upload response body cannot be decoded as UTF-8."""

    kind = UploadErrorKind.INVALID_ENCODING


class UrlNotFoundError(UploadError):
    """Raised when the upload response does not contain a hosted URL."""

    kind = UploadErrorKind.URL_NOT_FOUND


class TransportError(UploadError):
    """Raised when the HTTP exchange itself fails.

    Attributes:
        status: HTTP status code, if the server answered at all.
    """

    kind = UploadErrorKind.TRANSPORT_FAILURE

    def __init__(self, message: str, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


class MissingMetadataError(UploadError):
    """Raised when a selection lacks a MIME type, an extension or its bytes."""

    kind = UploadErrorKind.MISSING_METADATA

    @classmethod
    def for_fields(cls, missing: list[str]) -> MissingMetadataError:
        """Create a MissingMetadataError naming the unavailable fields."""
        return cls(f"Selection has nothing to upload: missing {', '.join(missing)}")


class AttachmentSizeError(ValueError):
    """Raised when a local file is larger than the configured maximum size.

    Not an UploadError: it is raised while a file is picked, before anything
    is uploaded. A file that outgrows the limit after it was picked makes
    ``resolve_selection`` fail with MissingMetadataError instead.
    """

    @classmethod
    def for_file(cls, filename: str, max_size: int, actual_size: int) -> AttachmentSizeError:
        """Create an AttachmentSizeError with a formatted message."""
        return cls(
            f"Attachment '{filename}' exceeds maximum size of "
            f"{max_size / (1024 * 1024):.2f}MB (size: {actual_size / (1024 * 1024):.2f}MB)"
        )
