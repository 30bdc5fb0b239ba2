"""Telemetry records, client, channels and OTel provider helpers.

Records built by the target are tracked by a :class:`TelemetryClient`, which
hands them to the channel of its :class:`TelemetryConfiguration`: an
:class:`OTelLogChannel` in production, an :class:`InMemoryChannel` in tests.
"""

from .channel import OTelLogChannel, TelemetryChannel
from .client import TelemetryClient, sdk_version
from .config import (
    ConnectionStringParts,
    TelemetryConfiguration,
    configure_telemetry,
    get_default_providers,
    parse_connection_string,
)
from .exporters import LOG_FORMAT, ConsoleLogRecordExporter
from .logger import format_log_record, format_log_record_json, telemetry_to_log_record
from .memory import InMemoryChannel
from .records import (
    ExceptionTelemetry,
    OperationContext,
    SupportsProperties,
    Telemetry,
    TelemetryContext,
    TraceTelemetry,
)

__all__ = [
    # records
    "Telemetry",
    "TraceTelemetry",
    "ExceptionTelemetry",
    "TelemetryContext",
    "OperationContext",
    "SupportsProperties",
    # client & config
    "TelemetryClient",
    "TelemetryConfiguration",
    "ConnectionStringParts",
    "parse_connection_string",
    "sdk_version",
    "configure_telemetry",
    "get_default_providers",
    # channels
    "TelemetryChannel",
    "OTelLogChannel",
    "InMemoryChannel",
    # exporters & formatting
    "ConsoleLogRecordExporter",
    "LOG_FORMAT",
    "telemetry_to_log_record",
    "format_log_record",
    "format_log_record_json",
]
