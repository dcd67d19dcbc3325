"""Compose session: the lifecycle of one post being written.

A session owns the composition buffer and the upload coordinator feeding it.
It ends exactly once, either by sending a post or by being cancelled, and its
outcome is delivered through ``ComposeSession.result()`` to whoever opened it.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional, Sequence

from nostr_compose.attachment import FileMediaItem
from nostr_compose.buffer import CompositionBuffer
from nostr_compose.config import DEFAULT_MAX_ATTACHMENT_SIZE, DEFAULT_PLACEHOLDER, Config
from nostr_compose.coordinator import UploadCoordinator, Uploader
from nostr_compose.diagnostics import DiagnosticsReporter, log_reporter
from nostr_compose.errors import MissingMetadataError
from nostr_compose.mention import detect_mention
from nostr_compose.models import Post, PostKind, ReferencedId
from nostr_compose.telemetry import setup_telemetry
from nostr_compose.upload import UploadClient

if TYPE_CHECKING:
    from opentelemetry.trace import Tracer

    from nostr_compose.attachment import MediaItem
    from nostr_compose.coordinator import UploadResult

logger = logging.getLogger(__name__)

# bech32 encoded secret key: "nsec" + separator + 52 data chars + 6 checksum chars
_PRIVATE_KEY_PATTERN = re.compile(r"nsec1[02-9ac-hj-np-z]{58}")


def looks_like_private_key(text: str) -> bool:
    """Check whether text contains something that looks like an nsec secret key."""
    return _PRIVATE_KEY_PATTERN.search(text.lower()) is not None


class SendOutcome(Enum):
    """What happened to a request to send the post."""

    SENT = "sent"
    NEEDS_CONFIRMATION = "needs_confirmation"
    BLANK = "blank"
    CLOSED = "closed"


@dataclass(frozen=True)
class ComposeResult:
    """Outcome of a compose session.

    Attributes:
        post: The post that was sent, or None if the session was cancelled.
    """

    post: Post | None = None

    @property
    def cancelled(self) -> bool:
        return self.post is None


class ComposeSession:
    """One post being composed, with inline attachment uploads.

    Must be created and used on the event loop thread that owns the UI state.

    Args:
        client: Uploader used for attachments.
        references: Events and pubkeys the post refers to, in tag order.
        replying_to_kind: Kind of the event being replied to, if any. Replies to
            chat messages are published as chat messages.
        submit: Optional sink called once with the sent post.
        diagnostics: Receives upload failures.
        private_key_check: Predicate deciding whether sending needs confirmation.
        placeholder: Marker shown in the post while an upload runs.
        tracer: Optional OpenTelemetry tracer for uploads.
        on_mention: Optional callback called with the new mention query each
            time it changes.
        text: Initial post text.
        max_attachment_size: Size limit in bytes for files picked with select_file.
    """

    def __init__(
        self,
        client: Uploader,
        references: Sequence[ReferencedId] = (),
        replying_to_kind: PostKind | None = None,
        submit: Callable[[Post], None] | None = None,
        diagnostics: DiagnosticsReporter = log_reporter,
        private_key_check: Callable[[str], bool] = looks_like_private_key,
        placeholder: str = DEFAULT_PLACEHOLDER,
        tracer: Optional["Tracer"] = None,
        on_mention: Callable[[str | None], None] | None = None,
        text: str = "",
        max_attachment_size: int = DEFAULT_MAX_ATTACHMENT_SIZE,
    ) -> None:
        self.references = tuple(references)
        self.replying_to_kind = replying_to_kind
        self.submit = submit
        self.private_key_check = private_key_check
        self.on_mention = on_mention
        self.max_attachment_size = max_attachment_size
        self.awaiting_confirmation = False
        self.buffer = CompositionBuffer(text)
        self.coordinator = UploadCoordinator(
            self.buffer,
            client,
            diagnostics=diagnostics,
            placeholder=placeholder,
            tracer=tracer,
        )
        self._mention = detect_mention(text)
        self._outcome: ComposeResult | None = None
        self._done = asyncio.Event()
        self._owned_client: UploadClient | None = None
        self.buffer.subscribe(self._on_buffer_change)

    @classmethod
    def from_config(cls, config: Config, **kwargs) -> ComposeSession:
        """Create a session from the package configuration.

        Uploads go to the configured endpoint, files picked with select_file
        are limited to the configured size, and uploads are traced when
        telemetry is enabled. With ``DEBUG`` set, the package logs at DEBUG
        level. Explicit kwargs win over config.
        """
        if config.debug:
            logging.getLogger("nostr_compose").setLevel(logging.DEBUG)
        kwargs.setdefault("placeholder", config.upload.placeholder)
        kwargs.setdefault("max_attachment_size", config.attachment.max_size)
        if "tracer" not in kwargs:
            kwargs["tracer"] = setup_telemetry(config.telemetry, config.service_name)
        if "client" in kwargs:
            return cls(**kwargs)
        client = UploadClient.from_config(config.upload)
        session = cls(client=client, **kwargs)
        session._owned_client = client
        return session

    @property
    def text(self) -> str:
        return self.buffer.text

    @text.setter
    def text(self, value: str) -> None:
        self.buffer.text = value

    @property
    def mention_query(self) -> str | None:
        """Query for the user search, if the post ends with an @mention."""
        return self._mention

    @property
    def can_post(self) -> bool:
        return not self.closed and not self.buffer.is_blank

    @property
    def closed(self) -> bool:
        return self._outcome is not None

    @property
    def post_kind(self) -> PostKind:
        if self.replying_to_kind is PostKind.CHAT:
            return PostKind.CHAT
        return PostKind.TEXT

    def select_attachment(
        self, item: MediaItem | None
    ) -> asyncio.Task[UploadResult | None] | None:
        """Upload a newly picked media item into the post."""
        if self.closed:
            logger.warning("Ignoring attachment selected after the session ended")
            return None
        return self.coordinator.select(item)

    def select_file(
        self, file_path: str | Path
    ) -> asyncio.Task[UploadResult | None] | None:
        """Upload a local file into the post, detecting its type from the content.

        A file that is missing, unreadable or larger than max_attachment_size
        is reported to diagnostics and nothing is uploaded.
        """
        if self.closed:
            logger.warning("Ignoring file selected after the session ended")
            return None
        try:
            item = FileMediaItem(file_path, max_size=self.max_attachment_size)
        except (OSError, ValueError) as e:
            self.coordinator.report(
                MissingMetadataError(f"File {str(file_path)!r} could not be read: {e}")
            )
            return None
        return self.coordinator.select(item)

    def request_send(self) -> SendOutcome:
        """Send the post, unless it needs confirmation first.

        Returns:
            NEEDS_CONFIRMATION when the text looks like it contains a private
            key; call confirm_send() or decline_send() afterwards.
        """
        if self.closed:
            return SendOutcome.CLOSED
        if self.buffer.is_blank:
            return SendOutcome.BLANK
        if self.private_key_check(self.buffer.text):
            logger.info("Post looks like it contains a private key, asking for confirmation")
            self.awaiting_confirmation = True
            return SendOutcome.NEEDS_CONFIRMATION
        self._send()
        return SendOutcome.SENT

    def confirm_send(self) -> SendOutcome:
        """Send the post without checking it for a private key."""
        if self.closed:
            return SendOutcome.CLOSED
        if self.buffer.is_blank:
            return SendOutcome.BLANK
        self._send()
        return SendOutcome.SENT

    def decline_send(self) -> None:
        """Go back to editing after a private key warning."""
        self.awaiting_confirmation = False

    def cancel(self) -> None:
        """End the session without sending anything."""
        if self.closed:
            return
        logger.debug("Compose session cancelled")
        self._finish(ComposeResult())

    async def result(self) -> ComposeResult:
        """Wait for the session to end and return its outcome."""
        await self._done.wait()
        assert self._outcome is not None
        return self._outcome

    async def aclose(self) -> None:
        """Cancel the session if still open and wait for uploads to unwind.

        Also closes the upload client if the session created it.
        """
        await self.coordinator.aclose()
        self.cancel()
        if self._owned_client is not None:
            await self._owned_client.close()

    def _send(self) -> None:
        post = Post(
            content=self.buffer.text.strip(),
            references=self.references,
            kind=self.post_kind,
        )
        logger.debug("Sending %s post with %d reference(s)", post.kind.name, len(post.references))
        if self.submit is not None:
            self.submit(post)
        self._finish(ComposeResult(post=post))

    def _finish(self, outcome: ComposeResult) -> None:
        self.awaiting_confirmation = False
        self._outcome = outcome
        self.coordinator.cancel()
        self._done.set()

    def _on_buffer_change(self, text: str) -> None:
        query = detect_mention(text)
        if query == self._mention:
            return
        self._mention = query
        if self.on_mention is not None:
            self.on_mention(query)
