"""Single-part multipart/form-data encoding."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Callable


def _random_boundary() -> str:
    return str(uuid.uuid4()).upper()


@dataclass(frozen=True)
class MultipartBody:
    """An encoded request body together with the boundary it was built with.

    Attributes:
        boundary: Boundary token delimiting the single body part.
        data: The encoded request body.
    """

    boundary: str
    data: bytes

    @property
    def content_type(self) -> str:
        """Value for the request's Content-Type header."""
        return f"multipart/form-data; boundary={self.boundary}"


class MultipartEncoder:
    """Builds a multipart/form-data body holding exactly one file part.

    The payload is not scanned for the boundary token. A random UUID makes a
    collision unlikely, but it is not impossible.

    Args:
        boundary_factory: Callable returning a fresh boundary token per call.
    """

    def __init__(self, boundary_factory: Callable[[], str] = _random_boundary) -> None:
        self._boundary_factory = boundary_factory

    def encode(
        self, field_name: str, file_name: str, mime_type: str, content: bytes
    ) -> MultipartBody:
        """Encode one file as a multipart/form-data body.

        Args:
            field_name: Name of the form field carrying the file.
            file_name: Filename announced in Content-Disposition.
            mime_type: MIME type announced in the part's Content-Type.
            content: Raw file bytes, copied verbatim into the body.

        Returns:
            The encoded body and its boundary.
        """
        boundary = self._boundary_factory()
        head = (
            f"\r\n--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{field_name}"; filename="{file_name}"\r\n'
            f"Content-Type: {mime_type}\r\n\r\n"
        )
        tail = f"\r\n--{boundary}--\r\n"
        return MultipartBody(
            boundary=boundary,
            data=head.encode("utf-8") + content + tail.encode("utf-8"),
        )
