"""Upload coordinator: selection -> upload -> buffer reconciliation.

The coordinator runs on the event loop that owns the composition buffer. Each
selection becomes one asyncio task, numbered with a generation. Only the task
of the current generation may touch the buffer, so a superseded upload whose
response arrives late is discarded instead of corrupting newer text.

State machine::

    IDLE -> PREPARING -> UPLOADING -> RECONCILING -> IDLE
    IDLE -> PREPARING -> UPLOADING -> FAILED -> IDLE
    IDLE -> PREPARING -> IDLE          (nothing to upload)
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional, Protocol

from opentelemetry.trace import Status, StatusCode

from nostr_compose.attachment import AttachmentSelection, MediaItem, resolve_selection
from nostr_compose.buffer import CompositionBuffer
from nostr_compose.config import DEFAULT_PLACEHOLDER
from nostr_compose.diagnostics import DiagnosticsReporter, log_reporter
from nostr_compose.errors import MissingMetadataError, UploadError

if TYPE_CHECKING:
    from opentelemetry.trace import Span, Tracer

logger = logging.getLogger(__name__)


class UploadState(Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    UPLOADING = "uploading"
    RECONCILING = "reconciling"
    FAILED = "failed"


class Uploader(Protocol):
    """Anything that can upload bytes and return the hosted URL."""

    async def upload(self, mime_type: str, extension: str, content: bytes) -> str: ...


@dataclass(frozen=True)
class UploadResult:
    """Outcome of one selection.

    Attributes:
        generation: Number of the selection that produced this result.
        url: Hosted URL on success.
        error: The failure otherwise.
    """

    generation: int
    url: str | None = None
    error: UploadError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class UploadCoordinator:
    """Uploads the latest selected attachment into a composition buffer.

    Must be used from the event loop thread that owns ``buffer``.

    Args:
        buffer: The post text to reconcile upload results into.
        client: Uploader, normally an UploadClient.
        diagnostics: Receives every failure; failures are never raised.
        placeholder: Marker shown in the buffer while uploading.
        tracer: Optional OpenTelemetry tracer; one span is opened per upload.
        on_state_change: Optional callback invoked with each new state.
    """

    def __init__(
        self,
        buffer: CompositionBuffer,
        client: Uploader,
        diagnostics: DiagnosticsReporter = log_reporter,
        placeholder: str = DEFAULT_PLACEHOLDER,
        tracer: Optional["Tracer"] = None,
        on_state_change: Callable[[UploadState], None] | None = None,
    ) -> None:
        self.buffer = buffer
        self.client = client
        self.diagnostics = diagnostics
        self.placeholder = placeholder
        self.tracer = tracer
        self.on_state_change = on_state_change
        self._state = UploadState.IDLE
        self._generation = 0
        self._task: asyncio.Task[UploadResult | None] | None = None
        # Generation whose placeholder is currently in the buffer
        self._placeholder_owner: int | None = None

    @property
    def state(self) -> UploadState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def busy(self) -> bool:
        return self._state in (UploadState.PREPARING, UploadState.UPLOADING)

    def select(self, item: MediaItem | None) -> asyncio.Task[UploadResult | None] | None:
        """Start uploading a newly selected media item.

        Any upload still in progress is cancelled and its placeholder removed
        first: the newest selection wins.

        Args:
            item: The selected media item; None (selection cleared) is ignored.

        Returns:
            The task running the upload, or None if there was nothing to select.
        """
        if item is None:
            return None

        self._invalidate()
        generation = self._generation
        logger.debug("Starting attachment upload #%d for %r", generation, item)
        self._task = asyncio.get_running_loop().create_task(
            self._run(item, generation), name=f"attachment-upload-{generation}"
        )
        self._set_state(UploadState.PREPARING)
        return self._task

    def cancel(self) -> None:
        """Cancel the upload in progress, if any, and remove its placeholder."""
        self._invalidate()

    async def wait(self) -> UploadResult | None:
        """Wait for the current upload to finish.

        Returns:
            The result of the current upload, or None if there is none or it
            was cancelled.
        """
        task = self._task
        if task is None:
            return None
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                return None
            raise

    async def aclose(self) -> None:
        """Cancel the upload in progress and wait for its task to unwind."""
        task = self._task
        self.cancel()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def _invalidate(self) -> None:
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            logger.debug("Cancelling superseded attachment upload #%d", self._generation - 1)
            task.cancel()
        if self._placeholder_owner is not None:
            self.buffer.remove_placeholder(self.placeholder)
            self._placeholder_owner = None
        self._set_state(UploadState.IDLE)

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _set_state(self, state: UploadState) -> None:
        if state is self._state:
            return
        self._state = state
        if self.on_state_change is not None:
            self.on_state_change(state)

    async def _run(self, item: MediaItem, generation: int) -> UploadResult | None:
        try:
            return await self._prepare_and_upload(item, generation)
        finally:
            # Unexpected errors must not leave a stale marker behind
            if self._is_current(generation):
                if self._placeholder_owner == generation:
                    self.buffer.remove_placeholder(self.placeholder)
                    self._placeholder_owner = None
                self._set_state(UploadState.IDLE)

    async def _prepare_and_upload(self, item: MediaItem, generation: int) -> UploadResult | None:
        try:
            selection = await resolve_selection(item)
        except MissingMetadataError as e:
            if not self._is_current(generation):
                return None
            self.report(e, None)
            return UploadResult(generation=generation, error=e)

        if not self._is_current(generation):
            return None

        self.buffer.insert_placeholder(self.placeholder)
        self._placeholder_owner = generation
        self._set_state(UploadState.UPLOADING)

        with self._span(selection) as span:
            try:
                url = await self.client.upload(
                    selection.mime_type, selection.extension, selection.content
                )
            except UploadError as e:
                if span is not None:
                    span.record_exception(e)
                    span.set_attribute("upload.outcome", e.kind.value)
                    span.set_status(Status(StatusCode.ERROR, e.kind.value))
                if not self._is_current(generation):
                    logger.debug("Dropping failure of superseded upload #%d", generation)
                    return None
                return self._fail(generation, e, selection)
            if span is not None:
                span.set_attribute("upload.outcome", "success")

        if not self._is_current(generation):
            logger.debug("Dropping result of superseded upload #%d", generation)
            return None

        self._set_state(UploadState.RECONCILING)
        if not self.buffer.replace_placeholder(self.placeholder, url):
            logger.info("Placeholder was edited away before upload #%d finished", generation)
        self._placeholder_owner = None
        logger.info("Attachment %s uploaded to %s", selection.filename, url)
        return UploadResult(generation=generation, url=url)

    def _fail(
        self, generation: int, error: UploadError, selection: AttachmentSelection
    ) -> UploadResult:
        self._set_state(UploadState.FAILED)
        if self._placeholder_owner == generation:
            self.buffer.remove_placeholder(self.placeholder)
            self._placeholder_owner = None
        self.report(error, selection)
        return UploadResult(generation=generation, error=error)

    def report(self, error: UploadError, selection: AttachmentSelection | None = None) -> None:
        """Hand a failure to the diagnostics reporter, logging reporter errors."""
        try:
            self.diagnostics(error, selection)
        except Exception:
            logger.exception("Diagnostics reporter failed while reporting %s", error.kind.value)

    def _span(
        self, selection: AttachmentSelection
    ) -> contextlib.AbstractContextManager[Span | None]:
        if self.tracer is None:
            return contextlib.nullcontext()
        return self.tracer.start_as_current_span(
            "attachment.upload",
            attributes={
                "attachment.mime_type": selection.mime_type,
                "attachment.extension": selection.extension,
                "attachment.size": selection.size,
            },
        )
