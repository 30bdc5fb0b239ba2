"""In-memory telemetry channel for tests.

:class:`InMemoryChannel` stores every sent record and lets a test block until
records arrive, which is how asynchronous delivery paths (for example an
:class:`~rxinsights.wrappers.AsyncTargetWrapper`) are checked without a
network. Its ``flush`` always raises so tests can assert that flush failures
reach the flush continuation.
"""

import threading
from concurrent.futures import Future
from datetime import timedelta

from .channel import TelemetryChannel
from .records import Telemetry


class InMemoryChannel(TelemetryChannel):
    """Thread-safe append-only record store with a wait-for-arrival primitive.

    Concurrency
    - ``send`` may be called from any number of producer threads. The append
      and the signal happen together under one lock, so records are stored in
      the order the sends acquired it.
    - The signal is auto-reset: each ``send`` bumps a generation counter and a
      waiter that wakes up consumes every generation seen so far. A send that
      happened before the wait started still releases the next waiter.
    """

    def __init__(self):
        self.endpoint_address = "https://example.com/telemetry/"
        self.developer_mode: bool | None = None
        self._cond = threading.Condition(threading.Lock())
        self._items: tuple[Telemetry, ...] = ()
        self._generation = 0
        self._consumed = 0

    @property
    def sent_items(self) -> tuple[Telemetry, ...]:
        """Snapshot of the records sent so far, in arrival order."""
        with self._cond:
            return self._items

    def send(self, item: Telemetry) -> None:
        with self._cond:
            self._items = self._items + (item,)
            self._generation += 1
            self._cond.notify_all()

    def wait_for_items_captured(self, timeout: float | timedelta) -> "Future[int | None]":
        """Wait in the background for the next send signal.

        Returns a future resolved with the number of records stored when the
        signal was observed, or with ``None`` if ``timeout`` elapsed first.
        """
        seconds = timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)
        future: Future[int | None] = Future()

        def _wait() -> None:
            with self._cond:
                signaled = self._cond.wait_for(
                    lambda: self._generation > self._consumed, timeout=seconds
                )
                if signaled:
                    self._consumed = self._generation
                    future.set_result(len(self._items))
                else:
                    future.set_result(None)

        threading.Thread(target=_wait, name="InMemoryChannel-wait", daemon=True).start()
        return future

    def flush(self) -> None:
        raise RuntimeError("Flush called")

    def dispose(self) -> None:
        pass

    def reset(self) -> "InMemoryChannel":
        """Drop every stored record; returns the channel for chaining."""
        with self._cond:
            self._items = ()
        return self
