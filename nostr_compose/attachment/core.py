"""Attachment selections and the media items they are resolved from."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from nostr_compose.attachment.mime_detection import detect_content_type
from nostr_compose.config import DEFAULT_MAX_ATTACHMENT_SIZE
from nostr_compose.errors import AttachmentSizeError, MissingMetadataError

logger = logging.getLogger(__name__)


@runtime_checkable
class MediaItem(Protocol):
    """One item chosen in a media picker.

    The picker may be unable to tell the type of an item or to load its data;
    each accessor then returns None.

    Example:
        class PhotoLibraryItem:
            mime_type = "image/heic"
            extension = "heic"

            async def load_bytes(self) -> bytes | None:
                return await library.export(self.asset_id)
    """

    @property
    def mime_type(self) -> str | None: ...

    @property
    def extension(self) -> str | None: ...

    async def load_bytes(self) -> bytes | None:
        """Load the raw bytes of the item."""
        ...


@dataclass(frozen=True)
class AttachmentSelection:
    """A chosen media item, ready to upload.

    Attributes:
        content: Raw bytes of the file.
        mime_type: MIME type of the file (e.g., 'image/png').
        extension: File extension without the dot (e.g., 'png').

    Raises:
        ValueError: If the MIME type or extension is empty.

    Example:
        >>> selection = AttachmentSelection(
        ...     content=png_bytes, mime_type="image/png", extension="png"
        ... )
        >>> selection.filename
        'file.png'
    """

    content: bytes = field(repr=False)
    mime_type: str
    extension: str

    def __post_init__(self) -> None:
        if not self.mime_type or "/" not in self.mime_type:
            raise ValueError(
                f"Invalid MIME type format '{self.mime_type}'. "
                f"MIME type must be in 'type/subtype' format (e.g., 'image/png')."
            )
        if not self.extension:
            raise ValueError("Attachment extension cannot be empty")
        normalized = self.extension.lstrip(".")
        if normalized != self.extension:
            object.__setattr__(self, "extension", normalized)

    @property
    def filename(self) -> str:
        """Filename announced to the upload endpoint."""
        return "file." + self.extension

    @property
    def size(self) -> int:
        return len(self.content)


async def resolve_selection(item: MediaItem) -> AttachmentSelection:
    """Read metadata and bytes of a media item into an AttachmentSelection.

    Metadata is checked before the bytes are loaded, so an item of unknown
    type is never read.

    Raises:
        MissingMetadataError: If the MIME type, extension or bytes are unavailable,
            including when reading the bytes fails.
    """
    mime_type = item.mime_type
    extension = item.extension
    missing = [
        name for name, value in (("MIME type", mime_type), ("extension", extension)) if not value
    ]
    if missing:
        raise MissingMetadataError.for_fields(missing)

    try:
        content = await item.load_bytes()
    except (OSError, ValueError) as e:
        raise MissingMetadataError(f"Selection could not be read: {e}") from e
    if content is None:
        raise MissingMetadataError.for_fields(["content"])

    try:
        return AttachmentSelection(content=content, mime_type=mime_type, extension=extension)
    except ValueError as e:
        raise MissingMetadataError(str(e)) from e


class FileMediaItem:
    """A media item backed by a file on disk.

    MIME type and extension are detected from the file's magic bytes, falling
    back to its name. Use this to feed local files into the upload coordinator.

    Args:
        file_path: Path to the file.
        max_size: Maximum allowed size in bytes.
        mime_type: Explicit MIME type; skips detection when given with extension.
        extension: Explicit extension without the dot.

    Raises:
        AttachmentSizeError: If the file exceeds max_size.
        FileNotFoundError: If the file does not exist.
    """

    def __init__(
        self,
        file_path: str | Path,
        max_size: int = DEFAULT_MAX_ATTACHMENT_SIZE,
        mime_type: str | None = None,
        extension: str | None = None,
    ) -> None:
        self.path = Path(file_path)
        self.max_size = max_size
        self._content: bytes | None = None
        self._mime_type = mime_type
        self._extension = extension
        if mime_type is None or extension is None:
            self._detect()

    def __repr__(self) -> str:
        return f"FileMediaItem({str(self.path)!r})"

    @property
    def mime_type(self) -> str | None:
        return self._mime_type

    @property
    def extension(self) -> str | None:
        return self._extension

    def _detect(self) -> None:
        content = self._read()
        detected = detect_content_type(content, self.path.name)
        if detected is None:
            logger.warning("Could not determine the type of '%s'", self.path)
            return
        detected_mime, detected_extension = detected
        self._mime_type = self._mime_type or detected_mime
        self._extension = self._extension or detected_extension

    def _read(self) -> bytes:
        if self._content is not None:
            return self._content

        # Early check to reject obviously oversized files without opening them
        file_size = self.path.stat().st_size
        if file_size > self.max_size:
            raise AttachmentSizeError.for_file(self.path.name, self.max_size, file_size)

        # Bounded read: the file may grow between stat() and open()
        with self.path.open("rb") as f:
            content = f.read(self.max_size + 1)

        if len(content) > self.max_size:
            raise AttachmentSizeError.for_file(self.path.name, self.max_size, len(content))

        self._content = content
        return content

    async def load_bytes(self) -> bytes | None:
        """Read the file off the event loop thread."""
        return await asyncio.to_thread(self._read)
