"""Targets: where log events are written.

:class:`Target` is the common shape (``write`` / ``flush_async`` / ``close``)
and makes every target a reactivex observer, so event streams can be piped
straight into one. :class:`InsightsTarget` is the adapter to the telemetry
client.
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Literal

from opentelemetry._logs import LoggerProvider
from reactivex.abc import ObserverBase

from ._otel_mixin import OTelLoggingMixin
from .assembler import RecordAssembler
from .context import DiagnosticsContext, default_context
from .events import LogEvent
from .layout import Layout
from .mechanism import InsightsException
from .properties import PropertyCollector, TargetProperty
from .severity import LogLevel
from .telemetry.client import TelemetryClient, sdk_version
from .telemetry.config import TelemetryConfiguration
from .telemetry.records import Telemetry

FlushContinuation = Callable[[BaseException | None], Any]

TARGET_STATE = Literal["created", "initialized", "closed"]


class Target(ObserverBase, ABC):
    """
    The abstract class for event destinations.

    As an observer a target writes every :class:`LogEvent` it receives and
    ignores other items. Errors are recorded as ERROR events rather than
    terminating anything, and completion is a no-op: a target outlives the
    streams feeding it.
    """

    name: str

    @abstractmethod
    def write(self, event: LogEvent) -> None: ...

    @abstractmethod
    def flush_async(self, continuation: FlushContinuation) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    def flush(self, timeout: float = 5.0) -> BaseException | None:
        """Blocking flush. Returns the error reported by the flush, if any.

        Raises ``TimeoutError`` when the flush does not complete in time.
        """
        done = threading.Event()
        outcome: dict[str, BaseException | None] = {"error": None}

        def _continuation(error: BaseException | None) -> None:
            outcome["error"] = error
            done.set()

        self.flush_async(_continuation)
        if not done.wait(timeout):
            raise TimeoutError(f"{self.name}: flush did not complete within {timeout}s")
        return outcome["error"]

    def on_next(self, value: Any) -> None:
        if isinstance(value, LogEvent):
            self.write(value)

    def on_error(self, error: Exception) -> None:
        if isinstance(error, InsightsException):
            event = LogEvent.create(
                LogLevel.ERROR, error.source, error.note or str(error), error=error.exception
            )
        else:
            event = LogEvent.create(LogLevel.ERROR, self.name, str(error), error=error)
        self.write(event)

    def on_completed(self) -> None:
        """
        A target is never completed.
        """
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class InsightsTarget(OTelLoggingMixin, Target):
    """
    Target that sends every event to a telemetry client as a trace record, or
    as an exception record when the event carries an error.

    Lifecycle: ``created -> initialized -> closed``. ``initialize`` renders the
    connection-string template once (against an empty event) and builds the
    client; ``write`` initializes on first use. Settings changed after
    initialization take effect on the next ``initialize`` after ``close``.

    Parameters
    - connection_string: template rendered at initialization. When it renders
      empty the client falls back to the process-wide configuration
      (:meth:`TelemetryConfiguration.active`) and ``instrumentation_key`` is
      rendered instead.
    - layout: message template, ``${message}`` by default.
    - include_event_properties / include_scope_properties / include_gdc,
      context_properties: property sources, see :mod:`rxinsights.properties`.
    - include_activity: copy the current OTel span's trace and span ids into
      the record's operation context.
    - context: diagnostic context used for templates and properties.
    - flush_delay: seconds a flush waits when a record was written within that
      window; 0 flushes immediately.
    - telemetry_configuration_factory: builds the configuration used with a
      connection string (tests substitute one carrying an in-memory channel).
    - logger_provider: OTel provider for the target's own diagnostics; without
      one the target operates silently.
    """

    def __init__(
        self,
        name: str = "InsightsTarget",
        *,
        connection_string: Layout | str = "",
        instrumentation_key: Layout | str = "",
        layout: Layout | str = "${message}",
        include_event_properties: bool = True,
        include_scope_properties: bool = False,
        include_gdc: bool = False,
        include_activity: bool = False,
        context_properties: list[TargetProperty] | None = None,
        context: DiagnosticsContext | None = None,
        flush_delay: float = 0.0,
        telemetry_configuration_factory: Callable[[], TelemetryConfiguration] | None = None,
        logger_provider: LoggerProvider | None = None,
    ):
        self.name = name
        self._name = name
        self._logger = (
            logger_provider.get_logger(f"rxinsights.{name}") if logger_provider else None
        )

        self._connection_string = Layout.coerce(connection_string)
        self._instrumentation_key = Layout.coerce(instrumentation_key)
        self.layout = Layout.coerce(layout)
        self.include_event_properties = include_event_properties
        self.include_scope_properties = include_scope_properties
        self.include_gdc = include_gdc
        self.include_activity = include_activity
        self.context_properties: list[TargetProperty] = list(context_properties or [])
        self.context = context if context is not None else default_context()
        self.flush_delay = flush_delay
        self.telemetry_configuration_factory = telemetry_configuration_factory

        self._state: TARGET_STATE = "created"
        self._configuration: TelemetryConfiguration | None = None
        self._client: TelemetryClient | None = None
        self._assembler: RecordAssembler | None = None

    # configuration ----------------------------------------------------------

    @property
    def connection_string(self) -> str:
        return self._connection_string.text

    @connection_string.setter
    def connection_string(self, value: Layout | str | None) -> None:
        self._connection_string = Layout.coerce(value)

    @property
    def instrumentation_key(self) -> str:
        return self._instrumentation_key.text

    @instrumentation_key.setter
    def instrumentation_key(self, value: Layout | str | None) -> None:
        self._instrumentation_key = Layout.coerce(value)

    @property
    def state(self) -> TARGET_STATE:
        return self._state

    @property
    def telemetry_client(self) -> TelemetryClient | None:
        return self._client

    @property
    def telemetry_configuration(self) -> TelemetryConfiguration | None:
        return self._configuration

    @property
    def assembler(self) -> RecordAssembler:
        """Record assembler built from the current settings (rebuilt by ``initialize``)."""
        if self._assembler is None:
            self._assembler = RecordAssembler(
                layout=self.layout,
                collector=PropertyCollector(
                    include_event_properties=self.include_event_properties,
                    include_scope_properties=self.include_scope_properties,
                    include_gdc=self.include_gdc,
                    context_properties=self.context_properties,
                ),
                include_activity=self.include_activity,
                context=self.context,
                logger=self._logger,
                name=f"{self.name}.assembler",
            )
        return self._assembler

    # lifecycle --------------------------------------------------------------

    def initialize(self) -> None:
        if self._state == "initialized":
            return

        null_event = LogEvent.null_event()
        connection_string = self._connection_string.render(null_event, self.context)

        if connection_string.strip():
            factory = self.telemetry_configuration_factory
            self._configuration = factory() if factory else TelemetryConfiguration.create_default()
            self._configuration.connection_string = connection_string
            self._client = TelemetryClient(self._configuration)
        else:
            self._client = TelemetryClient()
            instrumentation_key = self._instrumentation_key.render(null_event, self.context)
            if instrumentation_key.strip():
                self._client.context.instrumentation_key = instrumentation_key
            self._log("No connection string configured; using the active configuration", "WARN")

        self._client.context.sdk_version = sdk_version()
        self._assembler = None
        self._state = "initialized"
        self._log("Initialized.", "INFO")

    def close(self) -> None:
        if self._client is not None:
            self._client.dispose()
        if self._configuration is not None:
            self._configuration.dispose()
            self._configuration = None
        if self._state != "closed":
            self._state = "closed"
            self._log("Closed.", "INFO")

    # dispatch ---------------------------------------------------------------

    def build_property_bag(self, event: LogEvent, record: Telemetry) -> None:
        self.assembler.build_property_bag(event, record)

    def write(self, event: LogEvent) -> None:
        """Send ``event`` to the telemetry client.

        Raises:
            ValueError: If ``event`` is None.
        """
        if event is None:
            raise ValueError("event must not be None")

        if self._state == "closed":
            self._log(f"Dropped event #{event.sequence_id}: target is closed", "WARN")
            return
        if self._state == "created":
            self.initialize()

        try:
            record = self.assembler.build(event)
            assert self._client is not None
            self._client.track(record)
        except Exception as e:
            self._log(f"Failed to send event #{event.sequence_id}", "ERROR", e)

    def flush_async(self, continuation: FlushContinuation) -> None:
        """Flush the client; ``continuation`` receives None or the flush error.

        Raises:
            ValueError: If ``continuation`` is None.
        """
        if continuation is None:
            raise ValueError("continuation must not be None")

        if self._client is None:
            continuation(None)
            return

        try:
            future = self._client.flush_async(self.flush_delay)
            future.add_done_callback(lambda f: continuation(f.exception()))
        except Exception as e:
            continuation(e)
