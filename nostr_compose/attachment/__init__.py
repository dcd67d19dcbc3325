"""Attachment package for media selected while composing a post.

This package provides the AttachmentSelection class, the MediaItem protocol
implemented by media pickers, and a file-backed media item for local files.

Example:
    >>> from nostr_compose.attachment import AttachmentSelection
    >>> selection = AttachmentSelection(
    ...     content=png_bytes,
    ...     mime_type="image/png",
    ...     extension="png",
    ... )

For local files, let the type be detected from the content:
    >>> item = FileMediaItem("holiday.jpeg")
    >>> item.mime_type, item.extension
    ('image/jpeg', 'jpg')
"""

from nostr_compose.attachment.core import (
    AttachmentSelection,
    FileMediaItem,
    MediaItem,
    resolve_selection,
)
from nostr_compose.attachment.mime_detection import detect_content_type
from nostr_compose.config import DEFAULT_MAX_ATTACHMENT_SIZE
from nostr_compose.errors import AttachmentSizeError

__all__ = [
    "AttachmentSelection",
    "AttachmentSizeError",
    "DEFAULT_MAX_ATTACHMENT_SIZE",
    "FileMediaItem",
    "MediaItem",
    "detect_content_type",
    "resolve_selection",
]
