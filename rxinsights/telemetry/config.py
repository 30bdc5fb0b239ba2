"""Telemetry client configuration and OTel provider setup.

Provides :class:`TelemetryConfiguration` (connection string, channel,
lifetime), the connection-string parser, :func:`configure_telemetry`
(tracer + logger providers) and :func:`get_default_providers` (lazy singleton
with console output).
"""

import json
import os
from dataclasses import dataclass

from opentelemetry.sdk._logs import LoggerProvider, LogRecordProcessor
from opentelemetry.sdk._logs.export import (
    BatchLogRecordProcessor,
    LogRecordExporter,
    SimpleLogRecordProcessor,
)
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter

from .._version import __version__
from .channel import OTelLogChannel, TelemetryChannel
from .exporters import ConsoleLogRecordExporter

CONNECTION_STRING_ENV = "APPLICATIONINSIGHTS_CONNECTION_STRING"
SETTINGS_FILE_ENV = "RXINSIGHTS_SETTINGS_FILE"
DEFAULT_SETTINGS_FILE = "applicationinsights.json"


# =============================================================================
# Connection Strings
# =============================================================================


@dataclass(frozen=True)
class ConnectionStringParts:
    """Parsed ``Key=Value;Key=Value`` connection string."""

    instrumentation_key: str = ""
    ingestion_endpoint: str = ""
    live_endpoint: str = ""


def parse_connection_string(connection_string: str | None) -> ConnectionStringParts:
    """Parse a connection string. Keys are case-insensitive; malformed segments are skipped."""
    values: dict[str, str] = {}
    for segment in (connection_string or "").split(";"):
        key, sep, value = segment.partition("=")
        if not sep or not key.strip():
            continue
        values[key.strip().lower()] = value.strip()
    return ConnectionStringParts(
        instrumentation_key=values.get("instrumentationkey", ""),
        ingestion_endpoint=values.get("ingestionendpoint", ""),
        live_endpoint=values.get("liveendpoint", ""),
    )


# =============================================================================
# Telemetry Configuration
# =============================================================================


class TelemetryConfiguration:
    """Connection string and channel shared by telemetry clients.

    A configuration that creates its own default channel owns it and disposes
    it in :meth:`dispose`; a channel assigned from outside is left alone.
    ``dispose`` releases resources once and is safe to call repeatedly.
    """

    def __init__(
        self,
        connection_string: str = "",
        telemetry_channel: TelemetryChannel | None = None,
    ):
        self._connection_string = ""
        self._parts = ConnectionStringParts()
        self._channel = telemetry_channel
        self._owns_channel = False
        self._disposed = False
        self.instrumentation_key = ""
        self.connection_string = connection_string

    @property
    def connection_string(self) -> str:
        return self._connection_string

    @connection_string.setter
    def connection_string(self, value: str | None) -> None:
        self._connection_string = value or ""
        self._parts = parse_connection_string(self._connection_string)
        self.instrumentation_key = self._parts.instrumentation_key

    @property
    def ingestion_endpoint(self) -> str:
        return self._parts.ingestion_endpoint

    @property
    def telemetry_channel(self) -> TelemetryChannel:
        if self._channel is None:
            self._channel = OTelLogChannel()
            self._owns_channel = True
        return self._channel

    @telemetry_channel.setter
    def telemetry_channel(self, channel: TelemetryChannel) -> None:
        self._channel = channel
        self._owns_channel = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        if self._owns_channel and self._channel is not None:
            self._channel.dispose()

    @classmethod
    def create_default(cls) -> "TelemetryConfiguration":
        """New configuration seeded from ``APPLICATIONINSIGHTS_CONNECTION_STRING``."""
        return cls(connection_string=os.environ.get(CONNECTION_STRING_ENV, ""))

    @classmethod
    def from_settings_file(cls, path: str) -> "TelemetryConfiguration":
        """Load ``{"ConnectionString": "..."}`` from a JSON settings file.

        The environment variable wins over the file when both are set.
        """
        with open(path, encoding="utf-8") as f:
            settings = json.load(f)
        connection_string = os.environ.get(CONNECTION_STRING_ENV) or settings.get(
            "ConnectionString", ""
        )
        return cls(connection_string=connection_string)

    @classmethod
    def active(cls) -> "TelemetryConfiguration":
        """Process-wide configuration used by clients built without one.

        Created on first use from the settings file (``RXINSIGHTS_SETTINGS_FILE``
        or ``applicationinsights.json`` in the working directory) when present,
        otherwise from the environment.
        """
        global _active_configuration

        if _active_configuration is None:
            path = os.environ.get(SETTINGS_FILE_ENV, DEFAULT_SETTINGS_FILE)
            if os.path.isfile(path):
                _active_configuration = cls.from_settings_file(path)
            else:
                _active_configuration = cls.create_default()
        return _active_configuration


_active_configuration: TelemetryConfiguration | None = None


# =============================================================================
# OTel Providers
# =============================================================================


def _telemetry_resource(service_name: str, service_version: str) -> Resource:
    return Resource.create(
        {
            "service.name": service_name,
            "service.version": service_version or __version__,
            "telemetry.distro.name": "rxinsights",
            "telemetry.distro.version": __version__,
        }
    )


def _log_processor(exporter: LogRecordExporter, batch: bool) -> LogRecordProcessor:
    # batched for network exporters, immediate for console
    if batch:
        return BatchLogRecordProcessor(exporter)
    return SimpleLogRecordProcessor(exporter)


def configure_telemetry(
    service_name: str = "rxinsights",
    service_version: str = "",
    span_exporter: SpanExporter | None = None,
    log_exporter: LogRecordExporter | None = None,
    batch_logs: bool = True,
) -> tuple[TracerProvider, LoggerProvider]:
    """
    Build a tracer provider and a logger provider sharing one resource.

    The logger provider is what an :class:`OTelLogChannel` emits records
    through and what targets take as ``logger_provider`` for their own
    diagnostics. Nothing is registered globally.

    Args:
        service_name: ``service.name`` resource attribute.
        service_version: ``service.version``; the package version when empty.
        span_exporter: Optional exporter for spans, batched.
        log_exporter: Optional exporter for log records.
        batch_logs: Batch log records (network exporters) or hand each one to
            the exporter as it is emitted (console).

    Example:
        >>> _, logger_provider = configure_telemetry(
        ...     service_name="orders",
        ...     log_exporter=ConsoleLogRecordExporter(),
        ...     batch_logs=False,
        ... )
        >>> configuration = TelemetryConfiguration(
        ...     connection_string,
        ...     telemetry_channel=OTelLogChannel(logger_provider),
        ... )
    """
    resource = _telemetry_resource(service_name, service_version)

    tracer_provider = TracerProvider(resource=resource)
    if span_exporter is not None:
        tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))

    logger_provider = LoggerProvider(resource=resource)
    if log_exporter is not None:
        logger_provider.add_log_record_processor(_log_processor(log_exporter, batch_logs))

    return tracer_provider, logger_provider


_default_providers: tuple[TracerProvider, LoggerProvider] | None = None


def get_default_providers(
    service_name: str = "rxinsights",
) -> tuple[TracerProvider, LoggerProvider]:
    """Providers used by channels built without one (console output, unbatched).

    Created on the first call; ``service_name`` is ignored afterwards.
    """
    global _default_providers

    if _default_providers is None:
        _default_providers = configure_telemetry(
            service_name=service_name,
            log_exporter=ConsoleLogRecordExporter(),
            batch_logs=False,
        )
    return _default_providers
