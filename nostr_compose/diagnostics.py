"""Diagnostics reporting for failed uploads.

Inline attachment uploads are best effort: a failure removes the placeholder
from the post and is handed to a diagnostics reporter instead of being shown
to the user.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from nostr_compose.errors import UploadError

if TYPE_CHECKING:
    from nostr_compose.attachment import AttachmentSelection

logger = logging.getLogger(__name__)


class DiagnosticsReporter(Protocol):
    """Protocol for upload failure handlers.

    Reporters receive the error and, when it got that far, the selection that
    failed to upload.

    Example:
        class CrashReporter:
            def __call__(
                self, error: UploadError, selection: AttachmentSelection | None = None
            ) -> None:
                sentry_sdk.capture_exception(error)

        coordinator = UploadCoordinator(buffer, client, diagnostics=CrashReporter())
    """

    def __call__(
        self, error: UploadError, selection: AttachmentSelection | None = None
    ) -> None:
        """Report an upload failure.

        Args:
            error: The failure, tagged with its kind.
            selection: The selection being uploaded, if it was resolved.
        """
        ...


def log_reporter(error: UploadError, selection: AttachmentSelection | None = None) -> None:
    """Default reporter writing upload failures to the log."""
    if selection is None:
        logger.info("Attachment upload skipped (%s): %s", error.kind.value, error)
        return
    logger.warning(
        "Attachment upload of %s (%s, %d bytes) failed (%s): %s",
        selection.filename,
        selection.mime_type,
        selection.size,
        error.kind.value,
        error,
    )
