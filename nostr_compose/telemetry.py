"""OpenTelemetry tracing of attachment uploads.

The coordinator opens one ``attachment.upload`` span per upload on the tracer
returned by ``setup_telemetry``; with telemetry disabled it runs untraced.
"""

import atexit
import socket
import uuid
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from typing import TYPE_CHECKING, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor
from opentelemetry.semconv.resource import ResourceAttributes

from nostr_compose.config import TelemetryConfig

if TYPE_CHECKING:
    from opentelemetry.trace import Tracer

_MISSING_EXPORTERS_MSG = (
    "Telemetry is enabled but no exporters are configured. "
    "Set endpoint or console_export=True to export upload traces."
)


def _instance_id(telemetry_config: TelemetryConfig) -> str:
    if telemetry_config.service_instance_id:
        return telemetry_config.service_instance_id
    return f"{socket.gethostname()}-{str(uuid.uuid4())[:8]}"


def _resource_attributes(telemetry_config: TelemetryConfig, service_name: str) -> dict[str, str]:
    attributes = {
        ResourceAttributes.SERVICE_NAME: service_name,
        ResourceAttributes.SERVICE_INSTANCE_ID: _instance_id(telemetry_config),
    }
    try:
        attributes[ResourceAttributes.SERVICE_VERSION] = get_version("nostr-compose")
    except PackageNotFoundError:
        pass
    if telemetry_config.deployment_environment:
        attributes[ResourceAttributes.DEPLOYMENT_ENVIRONMENT] = (
            telemetry_config.deployment_environment
        )
    return attributes


def setup_telemetry(
    telemetry_config: TelemetryConfig, service_name: str = "nostr-compose"
) -> Optional["Tracer"]:
    """Configure a tracer provider for upload spans.

    Args:
        telemetry_config: Exporter settings
        service_name: Service name recorded in the trace resource

    Returns:
        A tracer to pass to the upload coordinator, or None when disabled

    Raises:
        ValueError: If telemetry is enabled without any exporter
    """
    if not telemetry_config.enabled:
        return None

    if not telemetry_config.endpoint and not telemetry_config.console_export:
        raise ValueError(_MISSING_EXPORTERS_MSG)

    resource = Resource.create(_resource_attributes(telemetry_config, service_name))
    provider = TracerProvider(resource=resource)

    if telemetry_config.endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        provider.add_span_processor(
            BatchSpanProcessor(
                OTLPSpanExporter(
                    endpoint=telemetry_config.endpoint, timeout=telemetry_config.timeout
                )
            )
        )

    if telemetry_config.console_export:
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter

        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    atexit.register(provider.shutdown)

    # The global provider is set only once per process; the returned tracer
    # always belongs to this provider
    return provider.get_tracer(__name__)
