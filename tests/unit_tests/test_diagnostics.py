import logging

import pytest

from nostr_compose.attachment import AttachmentSelection
from nostr_compose.diagnostics import log_reporter
from nostr_compose.errors import (
    InvalidEncodingError,
    MissingMetadataError,
    TransportError,
    UploadError,
    UploadErrorKind,
    UrlNotFoundError,
)


class TestErrorKinds:
    """Tests for the upload error taxonomy."""

    @pytest.mark.parametrize(
        "error, kind",
        [
            (InvalidEncodingError("x"), UploadErrorKind.INVALID_ENCODING),
            (UrlNotFoundError("x"), UploadErrorKind.URL_NOT_FOUND),
            (TransportError("x"), UploadErrorKind.TRANSPORT_FAILURE),
            (MissingMetadataError("x"), UploadErrorKind.MISSING_METADATA),
        ],
    )
    def test_each_error_has_kind(self, error: UploadError, kind: UploadErrorKind) -> None:
        """Test that every error class carries its tag."""
        assert isinstance(error, UploadError)
        assert error.kind is kind

    def test_transport_status(self) -> None:
        """Test that transport errors keep the HTTP status."""
        assert TransportError("HTTP 413", status=413).status == 413
        assert TransportError("refused").status is None

    def test_missing_fields_message(self) -> None:
        """Test that the missing fields are listed in the message."""
        error = MissingMetadataError.for_fields(["MIME type", "extension"])

        assert str(error) == "Selection has nothing to upload: missing MIME type, extension"


class TestLogReporter:
    """Tests for the default diagnostics reporter."""

    def test_failed_upload_is_warning(self, caplog) -> None:
        """Test that a failed upload is logged with its selection."""
        selection = AttachmentSelection(content=b"1234", mime_type="image/png", extension="png")

        with caplog.at_level(logging.INFO, logger="nostr_compose.diagnostics"):
            log_reporter(UrlNotFoundError("no url"), selection)

        (record,) = caplog.records
        assert record.levelno == logging.WARNING
        assert "file.png (image/png, 4 bytes)" in record.getMessage()
        assert "url-not-found" in record.getMessage()

    def test_skipped_upload_is_info(self, caplog) -> None:
        """Test that a selection with nothing to upload is only noted."""
        with caplog.at_level(logging.INFO, logger="nostr_compose.diagnostics"):
            log_reporter(MissingMetadataError.for_fields(["content"]))

        (record,) = caplog.records
        assert record.levelno == logging.INFO
        assert "missing-metadata" in record.getMessage()
