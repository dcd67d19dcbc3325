"""MIME type and extension detection for local files.

The media picker of a host application usually reports the content type of a
selected item. Files read from disk carry no such metadata, so it is derived
from the file's magic bytes, with the filename as a fallback.

Example:
    >>> from nostr_compose.attachment.mime_detection import detect_content_type
    >>> detect_content_type(b"\\x89PNG\\r\\n\\x1a\\n...", "photo")
    ('image/png', 'png')
"""

from __future__ import annotations

import logging
import mimetypes

import puremagic

logger = logging.getLogger(__name__)

# Extensions mimetypes reports that the hosting service does not expect
PREFERRED_EXTENSIONS: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/tiff": "tiff",
    "video/quicktime": "mov",
    "audio/mpeg": "mp3",
}


def _normalize_extension(extension: str) -> str:
    return extension.lstrip(".").lower()


def _detect_from_content(content: bytes) -> tuple[str, str] | None:
    try:
        detected = puremagic.magic_string(content)
    except puremagic.PureError:
        return None

    # puremagic orders matches by confidence, some carry no MIME type
    for match in detected:
        if match.mime_type and match.extension:
            return match.mime_type, _normalize_extension(match.extension)
    return None


def _detect_from_filename(filename: str) -> tuple[str, str] | None:
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return None
    extension = PREFERRED_EXTENSIONS.get(mime_type) or mimetypes.guess_extension(mime_type)
    if not extension:
        return None
    return mime_type, _normalize_extension(extension)


def detect_content_type(content: bytes, filename: str = "") -> tuple[str, str] | None:
    """Detect the MIME type and file extension of some content.

    Magic bytes win over the filename, since a renamed file keeps its content.

    Args:
        content: The binary content to inspect.
        filename: Original filename, used when the content is not recognized.

    Returns:
        A (mime_type, extension) pair, extension without the dot, or None if
        neither the content nor the filename identify the type.
    """
    if content:
        result = _detect_from_content(content)
        if result is not None:
            return result
        logger.debug("Could not identify content of '%s' from magic bytes", filename)

    if filename:
        return _detect_from_filename(filename)
    return None
