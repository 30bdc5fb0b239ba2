"""Shared test fixtures for rxinsights tests."""

import json
from unittest.mock import MagicMock

import pytest

import rxinsights.telemetry.config as config_module
from rxinsights import InsightsTarget, LogEvent, LogLevel
from rxinsights.context import DiagnosticsContext
from rxinsights.telemetry import InMemoryChannel, TelemetryConfiguration

INSTRUMENTATION_KEY = "b1f0e6a2-3c4d-4e5f-8a9b-0c1d2e3f4a5b"
CONNECTION_STRING = (
    f"InstrumentationKey={INSTRUMENTATION_KEY};"
    "IngestionEndpoint=https://westeurope-1.in.applicationinsights.example.com/"
)


class AdapterHelper:
    """Builds targets wired to an in-memory channel.

    The working directory holds an ``applicationinsights.json`` with the test
    connection string, and the process-wide configuration is reset around
    each test so the no-connection-string path sends to the same channel.
    """

    def __init__(self, channel: InMemoryChannel, context: DiagnosticsContext):
        self.channel = channel
        self.context = context
        self.connection_string = CONNECTION_STRING
        self.instrumentation_key = INSTRUMENTATION_KEY

    def configuration_factory(self) -> TelemetryConfiguration:
        return TelemetryConfiguration(telemetry_channel=self.channel)

    def create_target(self, **kwargs) -> InsightsTarget:
        kwargs.setdefault("connection_string", self.connection_string)
        kwargs.setdefault("context", self.context)
        kwargs.setdefault("telemetry_configuration_factory", self.configuration_factory)
        return InsightsTarget(**kwargs)

    def use_active_configuration(self) -> TelemetryConfiguration:
        """Route the process-wide configuration to the in-memory channel."""
        configuration = TelemetryConfiguration.active()
        configuration.telemetry_channel = self.channel
        return configuration

    def only_item(self):
        items = self.channel.sent_items
        assert len(items) == 1, f"expected one record, got {len(items)}"
        return items[0]


@pytest.fixture
def adapter_helper(tmp_path, monkeypatch):
    monkeypatch.delenv(config_module.CONNECTION_STRING_ENV, raising=False)
    monkeypatch.delenv(config_module.SETTINGS_FILE_ENV, raising=False)
    settings = tmp_path / config_module.DEFAULT_SETTINGS_FILE
    settings.write_text(json.dumps({"ConnectionString": CONNECTION_STRING}), encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config_module, "_active_configuration", None)

    helper = AdapterHelper(InMemoryChannel(), DiagnosticsContext("test"))
    yield helper
    helper.channel.reset()


@pytest.fixture
def mock_logger_provider():
    """LoggerProvider stand-in; ``provider.logger.emit`` records diagnostics."""
    provider = MagicMock()
    provider.logger = MagicMock()
    provider.get_logger.return_value = provider.logger
    return provider


def make_event(message: str = "Message", level: LogLevel = LogLevel.DEBUG, **kwargs) -> LogEvent:
    kwargs.setdefault("logger_name", "test.logger")
    return LogEvent(level=level, message=message, **kwargs)


def emitted_severities(logger: MagicMock) -> list[str]:
    return [c.args[0].severity_text for c in logger.emit.call_args_list]
