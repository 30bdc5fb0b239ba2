"""Telemetry client: stamps records with its context and sends them to a channel."""

import threading
import time
from concurrent.futures import Future

from reactivex.scheduler import ThreadPoolScheduler

from .._version import __version__
from .config import TelemetryConfiguration
from .records import Telemetry, TelemetryContext

SDK_PREFIX = "rxinsights:"


def sdk_version(prefix: str = SDK_PREFIX) -> str:
    """SDK identifier stamped on every record, e.g. ``rxinsights:0.1.0``."""
    return f"{prefix}{__version__}"


class TelemetryClient:
    """Sends telemetry records through a configuration's channel.

    Built without a configuration, the client uses the process-wide
    :meth:`TelemetryConfiguration.active` configuration.
    """

    def __init__(self, configuration: TelemetryConfiguration | None = None):
        self.configuration = configuration or TelemetryConfiguration.active()
        self.context = TelemetryContext()
        self._last_track: float | None = None
        self._lock = threading.Lock()
        self._scheduler = ThreadPoolScheduler(max_workers=2)
        self._disposed = False

    @property
    def instrumentation_key(self) -> str:
        return self.context.instrumentation_key or self.configuration.instrumentation_key

    def track(self, item: Telemetry) -> None:
        """Fill in routing context missing on ``item`` and send it."""
        if not item.context.instrumentation_key:
            item.context.instrumentation_key = self.instrumentation_key
        if not item.context.sdk_version:
            item.context.sdk_version = self.context.sdk_version
        with self._lock:
            self._last_track = time.monotonic()
        self.configuration.telemetry_channel.send(item)

    def flush(self) -> None:
        self.configuration.telemetry_channel.flush()

    def flush_async(self, delay: float = 0.0) -> "Future[bool]":
        """Flush on a background thread.

        When a record was tracked within the last ``delay`` seconds the flush
        waits ``delay`` first, giving a batching channel time to pick it up.
        The returned future holds ``True`` or the exception raised by the flush.
        """
        future: Future[bool] = Future()
        with self._lock:
            recent = (
                self._last_track is not None
                and time.monotonic() - self._last_track < delay
            )

        def _flush(scheduler, state) -> None:
            try:
                self.flush()
            except Exception as e:
                future.set_exception(e)
            else:
                future.set_result(True)

        try:
            self._scheduler.schedule_relative(delay if recent else 0.0, _flush)
        except RuntimeError:
            # executor already shut down (disposed, or interpreter exit)
            _flush(None, None)
        return future

    def dispose(self) -> None:
        """Stop the flush threads. Later flushes run on the calling thread."""
        if self._disposed:
            return
        self._disposed = True
        self._scheduler.executor.shutdown(wait=False)
