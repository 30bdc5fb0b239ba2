"""Bridge from the standard :mod:`logging` module to a target."""

import logging
import traceback
from dataclasses import replace

from opentelemetry._logs import LoggerProvider

from ._otel_mixin import OTelLoggingMixin
from .events import LogEvent
from .target import Target


class InsightsHandler(OTelLoggingMixin, logging.Handler):
    """
    ``logging.Handler`` that converts each record into a :class:`LogEvent`
    and writes it to ``target``.

    Values passed with ``extra=`` become event properties and ``exc_info``
    becomes the event error. With ``include_stack_frame`` the caller's frame
    summary is attached as the event's user stack frame.

    A failed or timed-out flush is kept on ``last_flush_error`` and reported
    to ``logger_provider``; it is not raised, so ``logging.shutdown`` always
    goes on to close the target.

    Example:
        >>> target = InsightsTarget(connection_string=cs)
        >>> logging.getLogger("app").addHandler(InsightsHandler(target))
        >>> logging.getLogger("app").info("started", extra={"port": 8080})
    """

    def __init__(
        self,
        target: Target,
        level: int = logging.NOTSET,
        *,
        include_stack_frame: bool = False,
        flush_timeout: float = 5.0,
        logger_provider: LoggerProvider | None = None,
    ):
        super().__init__(level)
        self.target: Target | None = target
        self.include_stack_frame = include_stack_frame
        self.flush_timeout = flush_timeout
        self.last_flush_error: BaseException | None = None
        self.name = f"InsightsHandler({target.name})"
        self._logger = (
            logger_provider.get_logger("rxinsights.handler") if logger_provider else None
        )

    def to_event(self, record: logging.LogRecord) -> LogEvent:
        event = LogEvent.from_record(record)
        if not self.include_stack_frame:
            return event
        frame = traceback.FrameSummary(record.pathname, record.lineno, record.funcName)
        return replace(event, user_stack_frame=frame, user_stack_frame_number=0)

    def emit(self, record: logging.LogRecord) -> None:
        if self.target is None:
            return
        try:
            self.target.write(self.to_event(record))
        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        self.acquire()
        try:
            if self.target is None:
                return
            try:
                error = self.target.flush(self.flush_timeout)
            except Exception as e:
                error = e
        finally:
            self.release()
        self.last_flush_error = error
        if error is not None:
            self._log("Flush failed", "ERROR", error)

    def close(self) -> None:
        self.acquire()
        try:
            if self.target is not None:
                self.target.close()
                self.target = None
        finally:
            self.release()
        super().close()
