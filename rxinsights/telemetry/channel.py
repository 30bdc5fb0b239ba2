"""Telemetry channels: where a client hands its finished records.

:class:`TelemetryChannel` is the interface; :class:`OTelLogChannel` is the
production channel, which converts each record into an OTel log record and
emits it through a ``LoggerProvider``. Transport, batching and retry are the
job of the processors and exporters configured on that provider.
"""

from abc import ABC, abstractmethod

from opentelemetry.sdk._logs import LoggerProvider

from .logger import telemetry_to_log_record
from .records import Telemetry

DEFAULT_ENDPOINT = "https://dc.services.visualstudio.com/v2/track"


class TelemetryChannel(ABC):
    """Destination of tracked records."""

    endpoint_address: str = DEFAULT_ENDPOINT
    developer_mode: bool | None = None

    @abstractmethod
    def send(self, item: Telemetry) -> None: ...

    @abstractmethod
    def flush(self) -> None:
        """Push out anything buffered. Failures propagate to the caller."""
        ...

    @abstractmethod
    def dispose(self) -> None: ...


class OTelLogChannel(TelemetryChannel):
    """Channel that emits records as OTel log records.

    Args:
        logger_provider: Provider to emit through. When omitted the shared
            default providers (console output) are used; a channel never shuts
            down a provider it did not create.
        instrumentation_name: Name of the OTel logger obtained from the provider.
        flush_timeout_millis: Timeout passed to ``force_flush``.
    """

    def __init__(
        self,
        logger_provider: LoggerProvider | None = None,
        instrumentation_name: str = "rxinsights",
        flush_timeout_millis: int = 30000,
    ):
        if logger_provider is None:
            # late import: config builds default channels
            from .config import get_default_providers

            _, logger_provider = get_default_providers()
        self._provider = logger_provider
        self._logger = logger_provider.get_logger(instrumentation_name)
        self._flush_timeout_millis = flush_timeout_millis
        self._disposed = False

    def send(self, item: Telemetry) -> None:
        if self._disposed:
            return
        self._logger.emit(telemetry_to_log_record(item))

    def flush(self) -> None:
        if not self._provider.force_flush(self._flush_timeout_millis):
            raise TimeoutError(
                f"Log records were not flushed within {self._flush_timeout_millis} ms"
            )

    def dispose(self) -> None:
        self._disposed = True
