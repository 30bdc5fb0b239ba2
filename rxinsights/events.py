import inspect
import itertools
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Callable, Optional

import reactivex as rx
from reactivex import Observable, Observer
from reactivex import operators as ops

from .severity import LogLevel

"""
The objects to deal with log events.
"""

_sequence = itertools.count(1)

# Attributes every ``logging.LogRecord`` carries; anything else came in through ``extra=``.
_STANDARD_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


def level_from_levelno(levelno: int) -> LogLevel:
    """Map a stdlib ``logging`` level number onto :class:`LogLevel`."""
    if levelno >= logging.CRITICAL:
        return LogLevel.FATAL
    if levelno >= logging.ERROR:
        return LogLevel.ERROR
    if levelno >= logging.WARNING:
        return LogLevel.WARN
    if levelno >= logging.INFO:
        return LogLevel.INFO
    if levelno >= logging.DEBUG:
        return LogLevel.DEBUG
    return LogLevel.TRACE


@dataclass(frozen=True)
class LogEvent:
    """
    One log call, as handed to a target.

    ``properties`` keeps insertion order; it may already contain values copied
    from a diagnostic context by whoever built the event.
    """

    level: LogLevel = LogLevel.INFO
    logger_name: str = ""
    message: str = ""
    args: tuple[Any, ...] = ()
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    sequence_id: int = field(default_factory=lambda: next(_sequence))
    error: Optional[BaseException] = None
    caller_class_name: str = ""
    caller_member_name: str = ""
    caller_file_path: str = ""
    caller_line_number: int = 0
    user_stack_frame: Any = None
    user_stack_frame_number: int = 0
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def formatted_message(self) -> str:
        """The message with ``%``-style args applied, or the raw message if that fails."""
        if not self.args:
            return str(self.message)
        try:
            return str(self.message) % self.args
        except Exception:
            return str(self.message)

    @classmethod
    def create(
        cls,
        level: LogLevel,
        logger_name: str,
        message: str,
        *args: Any,
        error: BaseException | None = None,
        properties: dict[str, Any] | None = None,
    ) -> "LogEvent":
        return cls(
            level=level,
            logger_name=logger_name,
            message=message,
            args=args,
            error=error,
            properties=dict(properties or {}),
        )

    @classmethod
    def null_event(cls) -> "LogEvent":
        """An empty event used to render configuration templates."""
        return cls(level=LogLevel.OFF, sequence_id=0)

    @classmethod
    def from_record(cls, record: logging.LogRecord) -> "LogEvent":
        """Build an event from a stdlib ``logging.LogRecord``.

        Attributes passed through ``extra=`` become event properties.
        """
        error = record.exc_info[1] if record.exc_info else None
        properties = {
            key: value
            for key, value in vars(record).items()
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_")
        }
        return cls(
            level=level_from_levelno(record.levelno),
            logger_name=record.name,
            message=str(record.msg),
            args=record.args if isinstance(record.args, tuple) else (),
            timestamp=datetime.fromtimestamp(record.created, tz=UTC),
            error=error,
            caller_member_name=record.funcName or "",
            caller_file_path=record.pathname or "",
            caller_line_number=record.lineno or 0,
            properties=properties,
        )

    def __str__(self) -> str:
        return f"[{self.level.name}] {self.timestamp.isoformat()} {self.logger_name}\t: {self.formatted_message}\n"


def log_filter(min_level: LogLevel = LogLevel.TRACE):
    """
    The operator to keep log events at or above ``min_level``. Other items are dropped.
    """
    return ops.filter(lambda ev: isinstance(ev, LogEvent) and ev.level >= min_level)


def drop_log():
    return ops.filter(lambda ev: not isinstance(ev, LogEvent))


def log_redirect_to(
    log_observer: Observer | Callable,
    min_level: LogLevel = LogLevel.TRACE,
):
    """
    The operator redirects log events to the specified observer (or function), and forwards other items.
    Log events below ``min_level`` are ignored.
    """

    def _log_redirect_to(source):
        def subscribe(observer, scheduler=None):

            if hasattr(log_observer, "on_next"):
                redirect_fun = log_observer.on_next
            else:
                redirect_fun = log_observer

            def on_next(value: Any) -> None:
                if isinstance(value, LogEvent):
                    if value.level >= min_level:
                        redirect_fun(value)  # type: ignore

                else:
                    observer.on_next(value)

            return source.subscribe(
                on_next=on_next,
                on_error=observer.on_error,
                on_completed=observer.on_completed,
                scheduler=scheduler,
            )

        return Observable(subscribe)

    return _log_redirect_to


class EventLogger:
    """
    A named event source that builds :class:`LogEvent` objects and pushes them
    to a super observer (usually a target).

    Caller member, file and line are captured from the frame that called the
    logging method.
    """

    def __init__(self, name: str, super_obs: Optional[rx.abc.ObserverBase | Callable] = None):
        self.name = name
        self.super_obs = super_obs

    def set_super(self, obs: rx.abc.ObserverBase | Callable):
        """
        Set the super observer to redirect the log events.
        """
        self.super_obs = obs

    def log(self, event: LogEvent) -> None:
        if self.super_obs is None:
            raise RuntimeError("Super observer is not set. Please call set_super() first.")
        if hasattr(self.super_obs, "on_next"):
            self.super_obs.on_next(event)
        else:
            self.super_obs(event)  # type: ignore

    def _emit(self, level: LogLevel, message: str, args: tuple, error, properties) -> None:
        caller = inspect.currentframe()
        # skip _emit and the public level method
        for _ in range(2):
            caller = caller.f_back if caller is not None else None
        info = inspect.getframeinfo(caller, context=0) if caller is not None else None
        self.log(
            LogEvent(
                level=level,
                logger_name=self.name,
                message=message,
                args=args,
                error=error,
                caller_member_name=info.function if info else "",
                caller_file_path=info.filename if info else "",
                caller_line_number=info.lineno if info else 0,
                properties=dict(properties or {}),
            )
        )

    def trace(self, message: str, *args: Any, error: BaseException | None = None, properties: dict | None = None) -> None:
        self._emit(LogLevel.TRACE, message, args, error, properties)

    def debug(self, message: str, *args: Any, error: BaseException | None = None, properties: dict | None = None) -> None:
        self._emit(LogLevel.DEBUG, message, args, error, properties)

    def info(self, message: str, *args: Any, error: BaseException | None = None, properties: dict | None = None) -> None:
        self._emit(LogLevel.INFO, message, args, error, properties)

    def warn(self, message: str, *args: Any, error: BaseException | None = None, properties: dict | None = None) -> None:
        self._emit(LogLevel.WARN, message, args, error, properties)

    def error(self, message: str, *args: Any, error: BaseException | None = None, properties: dict | None = None) -> None:
        self._emit(LogLevel.ERROR, message, args, error, properties)

    def fatal(self, message: str, *args: Any, error: BaseException | None = None, properties: dict | None = None) -> None:
        self._emit(LogLevel.FATAL, message, args, error, properties)
