"""Shared fakes for upload and compose tests."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable

from aiohttp import web
from aiohttp.test_utils import TestServer

from nostr_compose.attachment import AttachmentSelection
from nostr_compose.errors import UploadError

FILE_HASH = "0123456789abcdef" * 4
HOSTED_URL = f"https://nostr.build/i/nostr.build_{FILE_HASH}.png"
OTHER_URL = f"https://nostr.build/av/nostr.build_{'f' * 64}.jpg"

# PNG signature followed by an IHDR chunk header
PNG_HEADER = (
    b"\x89PNG\r\n\x1a\n"
    b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"
)


@dataclass
class FakeMediaItem:
    """Media item as a picker would hand it over."""

    content: bytes | None = b"X"
    mime_type: str | None = "image/png"
    extension: str | None = "png"
    loads: int = 0

    async def load_bytes(self) -> bytes | None:
        self.loads += 1
        return self.content


@dataclass
class PendingUpload:
    mime_type: str
    extension: str
    content: bytes
    future: asyncio.Future[str]

    def succeed(self, url: str = HOSTED_URL) -> None:
        if not self.future.done():
            self.future.set_result(url)

    def fail(self, error: UploadError) -> None:
        if not self.future.done():
            self.future.set_exception(error)


@dataclass
class ScriptedUploader:
    """Uploader whose calls stay pending until the test resolves them."""

    calls: list[PendingUpload] = field(default_factory=list)

    async def upload(self, mime_type: str, extension: str, content: bytes) -> str:
        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        self.calls.append(PendingUpload(mime_type, extension, content, future))
        return await future


@dataclass
class StubbornUploader(ScriptedUploader):
    """Uploader that ignores cancellation and still delivers a late URL."""

    late_url: str = OTHER_URL

    async def upload(self, mime_type: str, extension: str, content: bytes) -> str:
        try:
            return await super().upload(mime_type, extension, content)
        except asyncio.CancelledError:
            return self.late_url


@dataclass
class RecordingReporter:
    reports: list[tuple[UploadError, AttachmentSelection | None]] = field(default_factory=list)

    def __call__(self, error: UploadError, selection: AttachmentSelection | None = None) -> None:
        self.reports.append((error, selection))


async def until(predicate: Callable[[], bool], iterations: int = 100) -> None:
    """Let the event loop run until predicate holds."""
    for _ in range(iterations):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@contextlib.asynccontextmanager
async def upload_server(
    handler: Callable[[web.Request], Awaitable[web.StreamResponse]],
) -> AsyncIterator[TestServer]:
    """Run a local upload endpoint serving ``handler`` at /upload.php."""
    app = web.Application()
    app.router.add_post("/upload.php", handler)
    server = TestServer(app)
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()
