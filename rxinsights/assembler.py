"""Turns one :class:`LogEvent` into one telemetry record.

Assembly order:

1. timestamp and sequence come from the event;
2. the property bag gets ``LoggerName``, the caller-location keys, then
   everything the :class:`PropertyCollector` gathers (collisions renamed by
   ``add_unique``);
3. severity comes from :func:`map_severity`;
4. with ``include_activity`` on, the current OTel span supplies the operation ids;
5. events with an error become :class:`ExceptionTelemetry`, whose rendered
   layout (when non-empty) is added as the ``Message`` property; all other
   events become :class:`TraceTelemetry` with the rendered layout as message.

Nothing here raises for a bad event: renderers and value conversions fall
back to ``""``, and a failing property source is logged and skipped.
"""

from opentelemetry import trace
from opentelemetry._logs import Logger
from opentelemetry.trace.span import format_span_id, format_trace_id

from ._otel_mixin import OTelLoggingMixin
from .context import DiagnosticsContext, default_context
from .events import LogEvent
from .layout import Layout
from .properties import PropertyBag, PropertyCollector, add_unique
from .severity import map_severity
from .telemetry.records import (
    ExceptionTelemetry,
    SupportsProperties,
    Telemetry,
    TraceTelemetry,
)
from .utils import get_short_error_info


class RecordAssembler(OTelLoggingMixin):
    def __init__(
        self,
        layout: Layout | str = "${message}",
        collector: PropertyCollector | None = None,
        include_activity: bool = False,
        context: DiagnosticsContext | None = None,
        logger: Logger | None = None,
        name: str = "RecordAssembler",
    ):
        self.layout = Layout.coerce(layout)
        self.collector = collector or PropertyCollector()
        self.include_activity = include_activity
        self.context = context if context is not None else default_context()
        self._logger = logger
        self._name = name

    def build_property_bag(self, event: LogEvent, record: Telemetry) -> None:
        record.timestamp = event.timestamp
        record.sequence = str(event.sequence_id)

        if not isinstance(record, SupportsProperties):
            return

        bag = PropertyBag(record.properties)

        if event.logger_name:
            add_unique(bag, "LoggerName", event.logger_name)

        if event.user_stack_frame is not None:
            add_unique(bag, "UserStackFrame", event.user_stack_frame)
            add_unique(bag, "UserStackFrameNumber", event.user_stack_frame_number)
        else:
            if event.caller_class_name:
                add_unique(bag, "UserStackClassName", event.caller_class_name)
            if event.caller_member_name:
                add_unique(bag, "UserStackMemberName", event.caller_member_name)
            if event.caller_file_path:
                add_unique(bag, "UserStackSourceFile", event.caller_file_path)
            if event.caller_line_number:
                add_unique(bag, "UserStackSourceLine", event.caller_line_number)

        if self.collector.should_collect(event):
            try:
                self.collector.collect(event, bag, self.context)
            except Exception as e:
                self._log(
                    f"Collecting properties of event #{event.sequence_id} failed", "WARN", e
                )

    def add_activity_if_enabled(self, record: Telemetry) -> None:
        """Stamp the ambient trace id and span id as operation id and parent id.

        The parent id is the id of the span current while the event is
        written, so the record counts as a child of that span. For a
        propagated remote context this is the caller's span id.
        """
        if not self.include_activity:
            return

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            record.context.operation.id = format_trace_id(span_context.trace_id)
            record.context.operation.parent_id = format_span_id(span_context.span_id)

    def build(self, event: LogEvent) -> TraceTelemetry | ExceptionTelemetry:
        severity = map_severity(event.level)

        if event.error is not None:
            record: TraceTelemetry | ExceptionTelemetry = ExceptionTelemetry(
                exception=event.error,
                message=get_short_error_info(event.error),
                severity_level=severity,
            )
            self.build_property_bag(event, record)
            log_message = self.layout.render(event, self.context)
            if log_message:
                add_unique(PropertyBag(record.properties), "Message", log_message)
        else:
            record = TraceTelemetry(
                message=self.layout.render(event, self.context),
                severity_level=severity,
            )
            self.build_property_bag(event, record)

        self.add_activity_if_enabled(record)
        return record
