"""Tests for rxinsights.target - the telemetry target lifecycle and dispatch."""

import threading
import time
from unittest.mock import MagicMock

import pytest
import reactivex as rx

from conftest import emitted_severities, make_event
from rxinsights import (
    InsightsException,
    InsightsTarget,
    LogLevel,
    SeverityLevel,
    TargetProperty,
)
from rxinsights.telemetry import ExceptionTelemetry, TraceTelemetry, sdk_version


def wait_for_flush(target, timeout: float = 5.0):
    """Run flush_async and return what the continuation received."""
    done = threading.Event()
    outcome = []

    def continuation(error):
        outcome.append(error)
        done.set()

    target.flush_async(continuation)
    assert done.wait(timeout), "flush continuation was not called"
    return outcome[0]


# =============================================================================
# Dispatch
# =============================================================================


class TestWrite:
    def test_trace_record_is_sent(self, adapter_helper):
        target = adapter_helper.create_target()

        target.write(make_event("My Message", level=LogLevel.DEBUG))

        record = adapter_helper.only_item()
        assert isinstance(record, TraceTelemetry)
        assert record.message == "My Message"
        assert record.severity_level == SeverityLevel.VERBOSE
        assert record.timestamp is not None
        assert record.sequence != "0"
        assert record.context.instrumentation_key == adapter_helper.instrumentation_key

    def test_levels_are_sent_in_order(self, adapter_helper):
        target = adapter_helper.create_target()
        levels = [
            LogLevel.TRACE,
            LogLevel.DEBUG,
            LogLevel.INFO,
            LogLevel.WARN,
            LogLevel.ERROR,
            LogLevel.FATAL,
        ]

        for level in levels:
            target.write(make_event(f"{level.display_name} message", level=level))

        items = adapter_helper.channel.sent_items
        assert [item.severity_level for item in items] == [
            SeverityLevel.VERBOSE,
            SeverityLevel.VERBOSE,
            SeverityLevel.INFORMATION,
            SeverityLevel.WARNING,
            SeverityLevel.ERROR,
            SeverityLevel.CRITICAL,
        ]
        assert [item.message for item in items] == [
            f"{level.display_name} message" for level in levels
        ]
        assert {item.context.instrumentation_key for item in items} == {
            adapter_helper.instrumentation_key
        }

    def test_exception_record_is_sent(self, adapter_helper):
        target = adapter_helper.create_target()

        target.write(
            make_event(
                "custom message",
                level=LogLevel.ERROR,
                error=Exception("Test logging exception"),
            )
        )

        record = adapter_helper.only_item()
        assert isinstance(record, ExceptionTelemetry)
        assert record.message == "Exception: Test logging exception"
        assert record.properties["Message"].startswith("custom message")

    def test_layout(self, adapter_helper):
        target = adapter_helper.create_target(layout="${uppercase:${level}} ${message}")

        target.write(make_event("Message"))

        assert adapter_helper.only_item().message == "DEBUG Message"

    def test_sdk_version(self, adapter_helper):
        target = adapter_helper.create_target()

        target.write(make_event())

        assert adapter_helper.only_item().context.sdk_version == sdk_version()
        assert sdk_version().startswith("rxinsights:")

    def test_event_properties(self, adapter_helper):
        target = adapter_helper.create_target()

        target.write(make_event(properties={"Name": "Value", "Count": 3}))

        props = adapter_helper.only_item().properties
        assert props["Name"] == "Value"
        assert props["Count"] == "3"

    def test_gdc_properties(self, adapter_helper):
        adapter_helper.context.set("global_prop", "global value")
        target = adapter_helper.create_target(include_gdc=True)

        target.write(make_event())

        assert adapter_helper.only_item().properties["global_prop"] == "global value"

    def test_scope_properties(self, adapter_helper):
        target = adapter_helper.create_target(include_scope_properties=True)

        with adapter_helper.context.scope(request_id="r-1"):
            target.write(make_event())

        assert adapter_helper.only_item().properties["request_id"] == "r-1"

    def test_context_properties(self, adapter_helper):
        adapter_helper.context.set("tenant", "contoso")
        target = adapter_helper.create_target(
            context_properties=[TargetProperty.of("Tenant", "${gdc:item=tenant}")]
        )

        target.write(make_event())

        assert adapter_helper.only_item().properties["Tenant"] == "contoso"

    def test_write_none_raises(self, adapter_helper):
        target = adapter_helper.create_target()
        with pytest.raises(ValueError):
            target.write(None)  # type: ignore[arg-type]

        assert adapter_helper.channel.sent_items == ()

    def test_send_failure_is_logged_not_raised(self, adapter_helper, mock_logger_provider):
        adapter_helper.channel.send = MagicMock(side_effect=RuntimeError("network down"))
        target = adapter_helper.create_target(logger_provider=mock_logger_provider)

        target.write(make_event())

        assert "ERROR" in emitted_severities(mock_logger_provider.logger)


# =============================================================================
# Connection string resolution
# =============================================================================


class TestConnectionString:
    def test_initialize_uses_connection_string(self, adapter_helper):
        target = adapter_helper.create_target()

        target.initialize()

        assert target.state == "initialized"
        configuration = target.telemetry_configuration
        assert configuration.connection_string == adapter_helper.connection_string
        assert configuration.instrumentation_key == adapter_helper.instrumentation_key

    def test_connection_string_from_gdc(self, adapter_helper):
        adapter_helper.context.set("ConnectionString", adapter_helper.connection_string)
        target = adapter_helper.create_target(connection_string="${gdc:item=ConnectionString}")

        target.write(make_event())

        record = adapter_helper.only_item()
        assert record.context.instrumentation_key == adapter_helper.instrumentation_key

    def test_connection_string_from_environment(self, adapter_helper, monkeypatch):
        monkeypatch.setenv("RXINSIGHTS_TEST_CS", adapter_helper.connection_string)
        target = adapter_helper.create_target(
            connection_string="${environment:RXINSIGHTS_TEST_CS}"
        )

        target.write(make_event())

        record = adapter_helper.only_item()
        assert record.context.instrumentation_key == adapter_helper.instrumentation_key

    @pytest.mark.parametrize("connection_string", ["", None])
    def test_missing_connection_string_does_not_raise(self, adapter_helper, connection_string):
        adapter_helper.use_active_configuration()
        target = adapter_helper.create_target(connection_string=connection_string)

        target.write(make_event("still sent"))

        record = adapter_helper.only_item()
        assert record.message == "still sent"
        assert target.telemetry_configuration is None
        assert record.context.instrumentation_key == adapter_helper.instrumentation_key

    def test_instrumentation_key_without_connection_string(self, adapter_helper):
        adapter_helper.use_active_configuration()
        target = adapter_helper.create_target(
            connection_string="", instrumentation_key="legacy-key"
        )

        target.write(make_event())

        assert adapter_helper.only_item().context.instrumentation_key == "legacy-key"

    def test_configuration_factory_is_used(self, adapter_helper):
        factory = MagicMock(side_effect=adapter_helper.configuration_factory)
        target = adapter_helper.create_target(telemetry_configuration_factory=factory)

        target.initialize()
        target.initialize()

        factory.assert_called_once_with()

    def test_properties_reflect_templates(self, adapter_helper):
        target = adapter_helper.create_target(connection_string="${gdc:item=cs}")
        assert target.connection_string == "${gdc:item=cs}"
        target.instrumentation_key = "k"
        assert target.instrumentation_key == "k"


# =============================================================================
# Flush and close
# =============================================================================


class TestFlush:
    def test_flush_failure_reaches_continuation(self, adapter_helper):
        target = adapter_helper.create_target()
        target.write(make_event())

        error = wait_for_flush(target)

        assert isinstance(error, RuntimeError)
        assert str(error) == "Flush called"

    def test_blocking_flush_returns_error(self, adapter_helper):
        target = adapter_helper.create_target()
        target.write(make_event())

        error = target.flush(timeout=5.0)

        assert isinstance(error, RuntimeError)

    def test_flush_before_initialize(self, adapter_helper):
        target = adapter_helper.create_target()
        assert wait_for_flush(target) is None

    def test_flush_success(self, adapter_helper):
        adapter_helper.channel.flush = MagicMock()
        target = adapter_helper.create_target()
        target.write(make_event())

        assert wait_for_flush(target) is None
        adapter_helper.channel.flush.assert_called_once_with()

    def test_flush_none_continuation_raises(self, adapter_helper):
        target = adapter_helper.create_target()
        with pytest.raises(ValueError):
            target.flush_async(None)  # type: ignore[arg-type]


class TestClose:
    def test_close_disposes_configuration(self, adapter_helper):
        target = adapter_helper.create_target()
        target.initialize()
        configuration = target.telemetry_configuration

        target.close()

        assert configuration.disposed
        assert target.state == "closed"
        assert target.telemetry_configuration is None

    def test_close_twice(self, adapter_helper):
        target = adapter_helper.create_target()
        target.initialize()
        target.close()
        target.close()

    def test_close_without_initialize(self, adapter_helper):
        adapter_helper.create_target().close()

    def test_write_after_close_is_dropped(self, adapter_helper, mock_logger_provider):
        target = adapter_helper.create_target(logger_provider=mock_logger_provider)
        target.close()

        target.write(make_event())

        assert adapter_helper.channel.sent_items == ()
        assert "WARN" in emitted_severities(mock_logger_provider.logger)

    def test_context_manager(self, adapter_helper):
        with adapter_helper.create_target() as target:
            target.write(make_event())
        assert target.state == "closed"

    def test_close_releases_flush_threads(self, adapter_helper):
        before = threading.active_count()

        for _ in range(10):
            target = adapter_helper.create_target()
            target.write(make_event())
            wait_for_flush(target)
            target.close()

        deadline = time.monotonic() + 5.0
        while threading.active_count() > before + 1 and time.monotonic() < deadline:
            time.sleep(0.05)
        assert threading.active_count() <= before + 1

    def test_flush_after_close_still_reaches_continuation(self, adapter_helper):
        adapter_helper.channel.flush = MagicMock()
        target = adapter_helper.create_target()
        target.write(make_event())
        target.close()

        assert wait_for_flush(target) is None
        adapter_helper.channel.flush.assert_called_once_with()


# =============================================================================
# Observer surface
# =============================================================================


class TestObserver:
    def test_subscribe_to_stream(self, adapter_helper):
        target = adapter_helper.create_target()
        events = [make_event("a"), "not an event", make_event("b")]

        rx.from_(events).subscribe(target)

        assert [r.message for r in adapter_helper.channel.sent_items] == ["a", "b"]

    def test_on_error_with_insights_exception(self, adapter_helper):
        target = adapter_helper.create_target()

        target.on_error(InsightsException(ValueError("bad"), source="Pipeline", note="stage failed"))

        record = adapter_helper.only_item()
        assert isinstance(record, ExceptionTelemetry)
        assert record.severity_level == SeverityLevel.ERROR
        assert record.properties["LoggerName"] == "Pipeline"
        assert record.properties["Message"] == "stage failed"
        assert record.message == "ValueError: bad"

    def test_on_error_with_plain_exception(self, adapter_helper):
        target = adapter_helper.create_target(name="MyTarget")

        target.on_error(KeyError("k"))

        record = adapter_helper.only_item()
        assert record.properties["LoggerName"] == "MyTarget"

    def test_on_completed_keeps_target_open(self, adapter_helper):
        target = adapter_helper.create_target()
        target.on_completed()
        assert target.state == "created"
