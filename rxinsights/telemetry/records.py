"""Telemetry record types handed to :class:`TelemetryClient.track`."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable

from ..severity import SeverityLevel


@dataclass
class OperationContext:
    """Correlation ids of the operation a record belongs to."""

    id: str | None = None
    parent_id: str | None = None


@dataclass
class TelemetryContext:
    """Routing and correlation data stamped on records by the client."""

    instrumentation_key: str = ""
    sdk_version: str = ""
    operation: OperationContext = field(default_factory=OperationContext)


@runtime_checkable
class SupportsProperties(Protocol):
    properties: dict[str, str]


@dataclass(kw_only=True)
class Telemetry:
    timestamp: datetime | None = None
    sequence: str = ""
    context: TelemetryContext = field(default_factory=TelemetryContext)

    @property
    def telemetry_type(self) -> str:
        return "telemetry"


@dataclass(kw_only=True)
class TraceTelemetry(Telemetry):
    message: str = ""
    severity_level: SeverityLevel | None = None
    properties: dict[str, str] = field(default_factory=dict)

    @property
    def telemetry_type(self) -> str:
        return "trace"


@dataclass(kw_only=True)
class ExceptionTelemetry(Telemetry):
    exception: BaseException | None = None
    message: str = ""
    severity_level: SeverityLevel | None = None
    properties: dict[str, str] = field(default_factory=dict)

    @property
    def telemetry_type(self) -> str:
        return "exception"
