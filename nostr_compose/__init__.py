"""Post composition with inline attachment uploads.

The main entry point is ComposeSession, which owns the post text and uploads
picked media to the hosting endpoint while the user keeps typing.
"""

from nostr_compose.attachment import AttachmentSelection, FileMediaItem, MediaItem
from nostr_compose.buffer import CompositionBuffer
from nostr_compose.compose import (
    ComposeResult,
    ComposeSession,
    SendOutcome,
    looks_like_private_key,
)
from nostr_compose.config import Config
from nostr_compose.coordinator import UploadCoordinator, UploadResult, UploadState
from nostr_compose.errors import (
    AttachmentSizeError,
    InvalidEncodingError,
    MissingMetadataError,
    TransportError,
    UploadError,
    UploadErrorKind,
    UrlNotFoundError,
)
from nostr_compose.mention import detect_mention
from nostr_compose.models import Post, PostKind, ReferencedId
from nostr_compose.multipart import MultipartBody, MultipartEncoder
from nostr_compose.upload import UploadClient

__all__ = [
    "AttachmentSelection",
    "AttachmentSizeError",
    "ComposeResult",
    "ComposeSession",
    "CompositionBuffer",
    "Config",
    "FileMediaItem",
    "InvalidEncodingError",
    "MediaItem",
    "MissingMetadataError",
    "MultipartBody",
    "MultipartEncoder",
    "Post",
    "PostKind",
    "ReferencedId",
    "SendOutcome",
    "TransportError",
    "UploadClient",
    "UploadCoordinator",
    "UploadError",
    "UploadErrorKind",
    "UploadResult",
    "UploadState",
    "UrlNotFoundError",
    "detect_mention",
    "looks_like_private_key",
]
