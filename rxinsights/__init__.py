"""Convenience exports for the :mod:`rxinsights` package."""

from ._version import __version__  # noqa: F401
from .assembler import RecordAssembler  # noqa: F401
from .context import DiagnosticsContext, default_context  # noqa: F401
from .events import (  # noqa: F401
    EventLogger,
    LogEvent,
    drop_log,
    log_filter,
    log_redirect_to,
)
from .handler import InsightsHandler  # noqa: F401
from .layout import Layout  # noqa: F401
from .mechanism import InsightsException  # noqa: F401
from .overflow import Discard, DropNew, Grow, OverflowPolicy  # noqa: F401
from .properties import (  # noqa: F401
    PropertyBag,
    PropertyCollector,
    TargetProperty,
    add_unique,
)
from .severity import LogLevel, SeverityLevel, map_severity  # noqa: F401
from .target import InsightsTarget, Target  # noqa: F401
from .telemetry import (  # noqa: F401
    ExceptionTelemetry,
    InMemoryChannel,
    OTelLogChannel,
    TelemetryChannel,
    TelemetryClient,
    TelemetryConfiguration,
    TraceTelemetry,
    configure_telemetry,
)
from .wrappers import AsyncTargetWrapper  # noqa: F401

__all__ = [
    "InsightsException",

    "LogLevel",
    "SeverityLevel",
    "map_severity",

    "LogEvent",
    "EventLogger",
    "log_filter",
    "drop_log",
    "log_redirect_to",
    "DiagnosticsContext",
    "default_context",
    "Layout",

    "PropertyBag",
    "PropertyCollector",
    "TargetProperty",
    "add_unique",
    "RecordAssembler",

    # targets
    "Target",
    "InsightsTarget",
    "AsyncTargetWrapper",
    "InsightsHandler",
    "OverflowPolicy",
    "Discard",
    "DropNew",
    "Grow",

    # telemetry
    "TelemetryClient",
    "TelemetryConfiguration",
    "TelemetryChannel",
    "OTelLogChannel",
    "InMemoryChannel",
    "TraceTelemetry",
    "ExceptionTelemetry",
    "configure_telemetry",
]
