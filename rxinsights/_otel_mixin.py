"""Internal diagnostics for targets, emitted as OTel log records."""

import time

from opentelemetry._logs import Logger, SeverityNumber
from opentelemetry._logs import LogRecord as OTelLogRecord

from .utils import get_short_error_info

DIAGNOSTIC_SEVERITY: dict[str, SeverityNumber] = {
    "TRACE": SeverityNumber.TRACE,
    "DEBUG": SeverityNumber.DEBUG,
    "INFO": SeverityNumber.INFO,
    "WARN": SeverityNumber.WARN,
    "ERROR": SeverityNumber.ERROR,
    "FATAL": SeverityNumber.FATAL,
}


class OTelLoggingMixin:
    """Adds ``_log()`` to components that take an optional ``logger_provider``.

    Diagnostics about a target go to that provider and never back into the
    pipeline the target serves. Without a logger the call is a no-op.
    """

    _logger: Logger | None
    _name: str

    def _log(self, body: str, level: str = "INFO", error: BaseException | None = None) -> None:
        if self._logger is None:
            return
        attributes = {"component": self._name}
        if error is not None:
            attributes["exception"] = get_short_error_info(error)
        self._logger.emit(
            OTelLogRecord(
                timestamp=time.time_ns(),
                body=body,
                severity_text=level,
                severity_number=DIAGNOSTIC_SEVERITY.get(level, SeverityNumber.INFO),
                attributes=attributes,
            )
        )
