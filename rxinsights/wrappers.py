"""Asynchronous batching wrapper around another target."""

import threading

from opentelemetry._logs import LoggerProvider
from reactivex.scheduler import EventLoopScheduler

from ._otel_mixin import OTelLoggingMixin
from .events import LogEvent
from .overflow import OVERFLOW_ACTION, overflow_factory
from .target import FlushContinuation, Target


class AsyncTargetWrapper(OTelLoggingMixin, Target):
    """
    Queues events and writes them to the wrapped target from one background
    worker thread.

    ``write`` only enqueues, so the caller never waits on the wrapped target.
    A drain is scheduled ``time_to_sleep_between_batches`` seconds after the
    first queued event; it writes up to ``batch_size`` events and reschedules
    itself immediately while events remain. All drains, flushes and the final
    drain on ``close`` run on the same ``EventLoopScheduler`` thread, so the
    wrapped target sees events one at a time and in arrival order.

    Parameters
    - target: the wrapped target.
    - batch_size: maximum events written per drain.
    - time_to_sleep_between_batches: delay in seconds before a new drain.
    - queue_limit / overflow_action: queue bound and what to do when it is
      reached (see :mod:`rxinsights.overflow`).
    - close_timeout: seconds ``close`` waits for the final drain.
    """

    def __init__(
        self,
        target: Target,
        *,
        batch_size: int = 100,
        time_to_sleep_between_batches: float = 0.05,
        queue_limit: int = 10000,
        overflow_action: OVERFLOW_ACTION = "discard",
        close_timeout: float = 5.0,
        name: str | None = None,
        logger_provider: LoggerProvider | None = None,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.wrapped_target = target
        self.name = name if name else f"AsyncWrapper({target.name})"
        self._name = self.name
        self._logger = (
            logger_provider.get_logger(f"rxinsights.{self.name}") if logger_provider else None
        )
        self.batch_size = batch_size
        self.time_to_sleep_between_batches = time_to_sleep_between_batches
        self.close_timeout = close_timeout

        self._queue = overflow_factory(overflow_action, queue_limit)
        self._worker = EventLoopScheduler()
        self._lock = threading.Lock()
        self._drain_scheduled = False
        self._closed = False

    @property
    def queued(self) -> int:
        return self._queue.size()

    def write(self, event: LogEvent) -> None:
        if event is None:
            raise ValueError("event must not be None")
        with self._lock:
            closed = self._closed
            if not closed:
                dropped = self._queue.push(event)
        if closed:
            self._log(f"Dropped event #{event.sequence_id}: wrapper is closed", "WARN")
            return

        if dropped is not None:
            self._log(f"Queue full, dropped event #{dropped.sequence_id}", "WARN")
        self._schedule_drain(self.time_to_sleep_between_batches)

    def _schedule_drain(self, delay: float) -> None:
        with self._lock:
            if self._drain_scheduled or self._closed:
                return
            self._drain_scheduled = True
        self._worker.schedule_relative(delay, self._drain)

    def _drain(self, scheduler, state) -> None:
        with self._lock:
            self._drain_scheduled = False
        self._write_batch(self._queue.pop_batch(self.batch_size))
        if self._queue.size() > 0:
            self._schedule_drain(0.0)

    def _drain_all(self) -> None:
        while batch := self._queue.pop_batch(self.batch_size):
            self._write_batch(batch)

    def _write_batch(self, batch: list[LogEvent]) -> None:
        for event in batch:
            try:
                self.wrapped_target.write(event)
            except Exception as e:
                self._log(f"Wrapped target failed on event #{event.sequence_id}", "ERROR", e)

    def flush_async(self, continuation: FlushContinuation) -> None:
        """Write everything queued, then flush the wrapped target.

        Raises:
            ValueError: If ``continuation`` is None.
        """
        if continuation is None:
            raise ValueError("continuation must not be None")

        def _flush(scheduler, state) -> None:
            try:
                self._drain_all()
                self.wrapped_target.flush_async(continuation)
            except Exception as e:
                continuation(e)

        if self._closed:
            self.wrapped_target.flush_async(continuation)
            return
        self._worker.schedule(_flush)

    def close(self) -> None:
        """Write what is still queued, stop the worker and close the wrapped target."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        done = threading.Event()

        def _final(scheduler, state) -> None:
            try:
                self._drain_all()
            finally:
                done.set()

        self._worker.schedule(_final)
        if not done.wait(self.close_timeout):
            self._log(f"{self._queue.size()} events still queued at close", "WARN")
        self._worker.dispose()
        self.wrapped_target.close()
