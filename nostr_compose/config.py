"""Configuration module for nostr-compose.

This module defines all configuration models and parsing logic for the package.
"""

import sys
import typing as t
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_UPLOAD_ENDPOINT = "https://nostr.build/upload.php"
DEFAULT_HOST_PREFIX = "https://nostr.build/"
DEFAULT_FIELD_NAME = "fileToUpload"
DEFAULT_PLACEHOLDER = "[uploading...]"
DEFAULT_UPLOAD_TIMEOUT = 60.0

# 50MB, well above what the hosting endpoint accepts for free uploads
DEFAULT_MAX_ATTACHMENT_SIZE = 50 * 1024 * 1024


def _validate_http_url(value: str, field_name: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ValueError(f"Invalid {field_name}: '{value}'. Must be http(s)://host[:port]/...")
    return value


class StrictBaseModel(BaseModel):
    """Base model with immutable (frozen) configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class UploadConfig(StrictBaseModel):
    """Settings for the attachment hosting endpoint.

    Attributes:
        endpoint: URL the multipart upload is POSTed to
        field_name: Form field carrying the file
        host_prefix: Prefix every hosted URL in the response starts with
        timeout: Total timeout in seconds for one upload
        placeholder: Marker text shown in the post while uploading
    """

    endpoint: str = Field(default=DEFAULT_UPLOAD_ENDPOINT, alias="ENDPOINT")
    field_name: str = Field(default=DEFAULT_FIELD_NAME, alias="FIELD_NAME", min_length=1)
    host_prefix: str = Field(default=DEFAULT_HOST_PREFIX, alias="HOST_PREFIX")
    timeout: float = Field(default=DEFAULT_UPLOAD_TIMEOUT, alias="TIMEOUT", gt=0)
    placeholder: str = Field(default=DEFAULT_PLACEHOLDER, alias="PLACEHOLDER", min_length=1)

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Validate endpoint URL format."""
        return _validate_http_url(v, "endpoint")

    @field_validator("host_prefix")
    @classmethod
    def validate_host_prefix(cls, v: str) -> str:
        """Validate host prefix URL format."""
        return _validate_http_url(v, "host prefix")


class AttachmentConfig(StrictBaseModel):
    """Limits for attachments read from local files.

    Attributes:
        max_size: Maximum attachment size in bytes
    """

    max_size: int = Field(default=DEFAULT_MAX_ATTACHMENT_SIZE, alias="MAX_SIZE", gt=0)


class TelemetryConfig(StrictBaseModel):
    """OpenTelemetry configuration for upload tracing.

    Attributes:
        enabled: Enable or disable telemetry tracing
        endpoint: OTLP endpoint URL (e.g., http://localhost:4317 or Cloud Trace URL)
        console_export: Export traces to console for debugging
        timeout: Timeout in seconds for exporter (default: 10)
        deployment_environment: Deployment environment (e.g., production, staging, dev)
        service_instance_id: Service instance ID (auto-generated if not provided)
    """

    enabled: bool = Field(default=False, alias="enabled")
    endpoint: t.Optional[str] = Field(default=None, alias="endpoint")
    console_export: bool = Field(default=False, alias="console_export")
    timeout: int = Field(default=10, alias="timeout", gt=0)
    deployment_environment: t.Optional[str] = Field(default=None, alias="deployment_environment")
    service_instance_id: t.Optional[str] = Field(default=None, alias="service_instance_id")

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: t.Optional[str]) -> t.Optional[str]:
        """Validate endpoint URL format."""
        if v is None:
            return v
        return _validate_http_url(v, "endpoint")


class Config(StrictBaseModel):
    """Main configuration.

    Attributes:
        service_name: Name reported in telemetry resources
        upload: Upload endpoint configuration
        attachment: Attachment size limits
        telemetry: OpenTelemetry configuration
        debug: Enable debug logging
    """

    service_name: str = Field(default="nostr-compose", alias="SERVICE_NAME")
    upload: UploadConfig = Field(default_factory=UploadConfig, alias="UPLOAD")
    attachment: AttachmentConfig = Field(default_factory=AttachmentConfig, alias="ATTACHMENT")
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig, alias="TELEMETRY")
    debug: bool = Field(default=False, alias="DEBUG")

    @classmethod
    def parse_yaml(cls, path: str) -> "Config":
        """Parse configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Validated Config instance

        Raises:
            SystemExit: If config file is not found
        """
        try:
            with open(path, "r") as f:
                return cls.model_validate(yaml.safe_load(f) or {})
        except FileNotFoundError:
            print(f"Config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
