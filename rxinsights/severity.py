"""Log levels of the host pipeline and the telemetry severity they map to."""

from enum import IntEnum


class LogLevel(IntEnum):
    """Ordered log levels of incoming events. ``OFF`` is the disabled sentinel."""

    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4
    FATAL = 5
    OFF = 6

    @property
    def display_name(self) -> str:
        return self.name.capitalize()


class SeverityLevel(IntEnum):
    """Ordered severity attached to telemetry records."""

    VERBOSE = 0
    INFORMATION = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4


_SEVERITY_BY_LEVEL: dict[LogLevel, SeverityLevel] = {
    LogLevel.TRACE: SeverityLevel.VERBOSE,
    LogLevel.DEBUG: SeverityLevel.VERBOSE,
    LogLevel.INFO: SeverityLevel.INFORMATION,
    LogLevel.WARN: SeverityLevel.WARNING,
    LogLevel.ERROR: SeverityLevel.ERROR,
    LogLevel.FATAL: SeverityLevel.CRITICAL,
}


def map_severity(level: LogLevel | None) -> SeverityLevel | None:
    """Map a log level to a telemetry severity.

    Returns ``None`` for ``LogLevel.OFF``, ``None`` and any value outside the
    known levels.
    """
    if level is None:
        return None
    try:
        return _SEVERITY_BY_LEVEL.get(LogLevel(level))
    except ValueError:
        return None
