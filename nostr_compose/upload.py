"""HTTP client for the attachment hosting endpoint.

The endpoint has no structured response contract: it answers with an HTML page
and the hosted URL is found by scanning the text for the URL shape the
service generates.

Example:
    >>> async with UploadClient() as client:
    ...     url = await client.upload("image/png", "png", png_bytes)
"""

from __future__ import annotations

import asyncio
import logging
import re

import aiohttp

from nostr_compose.config import (
    DEFAULT_FIELD_NAME,
    DEFAULT_HOST_PREFIX,
    DEFAULT_UPLOAD_ENDPOINT,
    DEFAULT_UPLOAD_TIMEOUT,
    UploadConfig,
)
from nostr_compose.errors import InvalidEncodingError, TransportError, UrlNotFoundError
from nostr_compose.multipart import MultipartEncoder

logger = logging.getLogger(__name__)


def hosted_url_pattern(host_prefix: str = DEFAULT_HOST_PREFIX) -> re.Pattern[str]:
    """Compile the pattern matching URLs of files stored by the hosting service."""
    return re.compile(re.escape(host_prefix) + r"(?:i|av)/nostr\.build_[a-z0-9]{64}\.[a-z0-9]+")


_DEFAULT_PATTERN = hosted_url_pattern()


def decode_response_body(body: bytes) -> str:
    """Decode a response body as strict UTF-8.

    Raises:
        InvalidEncodingError: If the body is not valid UTF-8.
    """
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidEncodingError(f"Upload response is not valid UTF-8: {e}") from e


def extract_hosted_url(text: str, pattern: re.Pattern[str] = _DEFAULT_PATTERN) -> str:
    """Return the first hosted URL found in the response text.

    Raises:
        UrlNotFoundError: If the text contains no hosted URL.
    """
    match = pattern.search(text)
    if match is None:
        raise UrlNotFoundError(
            f"Upload response ({len(text)} characters) does not contain a hosted URL"
        )
    return match.group(0)


class UploadClient:
    """Uploads one file per call to the hosting endpoint.

    Cancelling the task awaiting ``upload`` aborts the HTTP request.

    Args:
        endpoint: URL the multipart body is POSTed to.
        field_name: Form field carrying the file.
        host_prefix: Prefix of hosted URLs in the response.
        timeout: Total timeout in seconds for one upload.
        session: Optional externally owned aiohttp session. When omitted the
            client creates its own on first use and closes it in ``close()``.
        encoder: Multipart encoder, injectable for tests.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_UPLOAD_ENDPOINT,
        field_name: str = DEFAULT_FIELD_NAME,
        host_prefix: str = DEFAULT_HOST_PREFIX,
        timeout: float = DEFAULT_UPLOAD_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
        encoder: MultipartEncoder | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.field_name = field_name
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._pattern = hosted_url_pattern(host_prefix)
        self._encoder = encoder or MultipartEncoder()
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, config: UploadConfig, **kwargs) -> UploadClient:
        """Create an UploadClient from the upload configuration."""
        return cls(
            endpoint=config.endpoint,
            field_name=config.field_name,
            host_prefix=config.host_prefix,
            timeout=config.timeout,
            **kwargs,
        )

    async def __aenter__(self) -> UploadClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        # aiohttp sessions must be created inside the running event loop
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def upload(self, mime_type: str, extension: str, content: bytes) -> str:
        """Upload a file and return its hosted URL.

        Args:
            mime_type: MIME type of the file (e.g., 'image/png').
            extension: File extension without the dot (e.g., 'png').
            content: Raw file bytes.

        Returns:
            The first hosted URL found in the response.

        Raises:
            TransportError: On connection errors, timeouts or non-2xx status.
            InvalidEncodingError: If the response is not valid UTF-8.
            UrlNotFoundError: If the response contains no hosted URL.
        """
        file_name = "file." + extension
        body = self._encoder.encode(self.field_name, file_name, mime_type, content)
        logger.debug(
            "Uploading %s (%s, %d bytes) to %s", file_name, mime_type, len(content), self.endpoint
        )

        session = self._get_session()
        try:
            async with session.post(
                self.endpoint,
                data=body.data,
                headers={"Content-Type": body.content_type},
                timeout=self.timeout,
            ) as response:
                if not 200 <= response.status < 300:
                    raise TransportError(
                        f"Upload endpoint answered with HTTP {response.status}",
                        status=response.status,
                    )
                raw = await response.read()
        except asyncio.TimeoutError as e:
            raise TransportError(f"Upload timed out after {self.timeout.total} seconds") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Upload request failed: {e}") from e

        url = extract_hosted_url(decode_response_body(raw), self._pattern)
        logger.debug("Upload of %s stored at %s", file_name, url)
        return url
