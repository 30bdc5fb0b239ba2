"""Conversion of telemetry records into OTel log records, and their formatting.

Provides :func:`telemetry_to_log_record`, used by the OTel channel to hand
records to an OTel ``LoggerProvider``, and :func:`format_log_record` /
:func:`format_log_record_json` used by log-record exporters.
"""

import json
from datetime import UTC, datetime

from opentelemetry._logs import LogRecord, SeverityNumber

from ..severity import SeverityLevel
from ..utils import qualified_type_name
from .records import ExceptionTelemetry, SupportsProperties, Telemetry, TraceTelemetry

SEVERITY_NUMBERS: dict[SeverityLevel, SeverityNumber] = {
    SeverityLevel.VERBOSE: SeverityNumber.DEBUG,
    SeverityLevel.INFORMATION: SeverityNumber.INFO,
    SeverityLevel.WARNING: SeverityNumber.WARN,
    SeverityLevel.ERROR: SeverityNumber.ERROR,
    SeverityLevel.CRITICAL: SeverityNumber.FATAL,
}

# Attribute keys carrying the record's context.
ATTR_TYPE = "ai.telemetry.type"
ATTR_SEQUENCE = "ai.sequence"
ATTR_IKEY = "ai.instrumentation_key"
ATTR_SDK = "ai.internal.sdk_version"
ATTR_OPERATION_ID = "ai.operation.id"
ATTR_OPERATION_PARENT_ID = "ai.operation.parent_id"


# =============================================================================
# Record Conversion
# =============================================================================


def telemetry_to_log_record(item: Telemetry) -> LogRecord:
    """
    Convert a trace or exception record into an OTel LogRecord.

    Free-form properties become attributes as-is; context fields are added
    under ``ai.*`` keys. Exception records also carry the OTel semantic
    ``exception.type`` / ``exception.message`` attributes.
    """
    severity: SeverityLevel | None = getattr(item, "severity_level", None)
    attributes: dict[str, str] = {}
    if isinstance(item, SupportsProperties):
        attributes.update(item.properties)

    attributes[ATTR_TYPE] = item.telemetry_type
    attributes[ATTR_SEQUENCE] = item.sequence
    if item.context.instrumentation_key:
        attributes[ATTR_IKEY] = item.context.instrumentation_key
    if item.context.sdk_version:
        attributes[ATTR_SDK] = item.context.sdk_version
    if item.context.operation.id:
        attributes[ATTR_OPERATION_ID] = item.context.operation.id
    if item.context.operation.parent_id:
        attributes[ATTR_OPERATION_PARENT_ID] = item.context.operation.parent_id

    if isinstance(item, ExceptionTelemetry) and item.exception is not None:
        attributes["exception.type"] = qualified_type_name(item.exception)
        attributes["exception.message"] = str(item.exception)

    body = item.message if isinstance(item, (TraceTelemetry, ExceptionTelemetry)) else ""
    timestamp = item.timestamp or datetime.now(UTC)

    return LogRecord(
        timestamp=int(timestamp.timestamp() * 1e9),
        body=body,
        severity_text=severity.name if severity is not None else None,
        severity_number=SEVERITY_NUMBERS.get(severity, SeverityNumber.UNSPECIFIED),
        attributes=attributes,
    )


# =============================================================================
# Log Record Formatting
# =============================================================================


def format_log_record(record: LogRecord) -> str:
    """
    Format a LogRecord as a human-readable string for console output.

    Format: YYYY-MM-DDTHH:MM:SSZ [SEVERITY] [operation:parent] type#sequence\\t: body\\n

    The operation part is shown only when the record carries an operation id,
    shortened to the first 8 characters of each id.
    """
    timestamp_ns = record.timestamp or 0
    timestamp_str = datetime.fromtimestamp(timestamp_ns / 1e9, tz=UTC).strftime(
        "%Y-%m-%dT%H:%M:%SZ"
    )
    attrs = record.attributes or {}
    kind = attrs.get(ATTR_TYPE, "log")
    sequence = attrs.get(ATTR_SEQUENCE, "")

    operation_part = ""
    operation_id = attrs.get(ATTR_OPERATION_ID)
    if operation_id:
        parent_id = attrs.get(ATTR_OPERATION_PARENT_ID, "")
        operation_part = f" [{str(operation_id)[:8]}:{str(parent_id)[:8]}]"

    source = f"{kind}#{sequence}" if sequence else str(kind)
    return (
        f"{timestamp_str} [{record.severity_text or 'UNSET'}]{operation_part} "
        f"{source}\t: {record.body!r}\n"
    )


_CONTEXT_FIELDS = {
    ATTR_TYPE: "type",
    ATTR_SEQUENCE: "sequence",
    ATTR_IKEY: "instrumentation_key",
    ATTR_SDK: "sdk_version",
    ATTR_OPERATION_ID: "operation_id",
    ATTR_OPERATION_PARENT_ID: "operation_parent_id",
}


def format_log_record_json(record: LogRecord) -> str:
    """
    Format a LogRecord as one JSON line.

    The record context (``ai.*`` attributes) is lifted into top-level fields;
    the remaining attributes are the record's free-form properties.
    """
    attrs = dict(record.attributes or {})
    severity = record.severity_number

    data: dict[str, object] = {
        "time": datetime.fromtimestamp((record.timestamp or 0) / 1e9, tz=UTC).isoformat(),
        "severity": record.severity_text,
        "severity_number": severity.value if severity is not None else None,
        "message": record.body,
    }
    for key, field_name in _CONTEXT_FIELDS.items():
        if key in attrs:
            data[field_name] = attrs.pop(key)
    data["properties"] = attrs

    return json.dumps(data, default=str) + "\n"
