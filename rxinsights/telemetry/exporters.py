"""Console output for telemetry log records.

:class:`ConsoleLogRecordExporter` prints what an
:class:`~rxinsights.telemetry.channel.OTelLogChannel` emits, one record per
line, which is the default destination when no provider is configured.
"""

import sys
from collections.abc import Sequence
from typing import Literal, TextIO

from opentelemetry._logs import SeverityNumber
from opentelemetry.sdk._logs._internal import ReadableLogRecord
from opentelemetry.sdk._logs.export import (
    LogRecordExporter,
    LogRecordExportResult,
)

from .logger import format_log_record, format_log_record_json

LOG_FORMAT = Literal["text", "json"]


class ConsoleLogRecordExporter(LogRecordExporter):
    """
    Writes trace and exception records to a text stream (stderr by default).

    ``format="text"`` gives one readable line per record::

        2026-02-03T10:30:00Z [VERBOSE] trace#17	: 'Connection established'
        2026-02-03T10:30:01Z [ERROR] [4bf92f35:00f067aa] exception#18	: 'ValueError: boom'

    ``format="json"`` gives one JSON object per line. Records below
    ``min_severity`` are skipped; records without a severity are always written.
    """

    def __init__(
        self,
        format: LOG_FORMAT = "text",
        stream: TextIO | None = None,
        min_severity: SeverityNumber = SeverityNumber.UNSPECIFIED,
    ):
        self._render = format_log_record_json if format == "json" else format_log_record
        self._stream = stream
        self.min_severity = min_severity

    @property
    def stream(self) -> TextIO:
        # sys.stderr is looked up on every access
        return self._stream if self._stream is not None else sys.stderr

    def _accepts(self, severity: SeverityNumber | None) -> bool:
        if severity is None or severity == SeverityNumber.UNSPECIFIED:
            return True
        return severity.value >= self.min_severity.value

    def export(self, batch: Sequence[ReadableLogRecord]) -> LogRecordExportResult:
        out = self.stream
        try:
            for item in batch:
                record = item.log_record
                if self._accepts(record.severity_number):
                    out.write(self._render(record))
            out.flush()
        except Exception:
            return LogRecordExportResult.FAILURE
        return LogRecordExportResult.SUCCESS

    def shutdown(self) -> None:
        pass

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        self.stream.flush()
        return True
