"""Core error types for :mod:`rxinsights`."""


class InsightsException(Exception):
    """Wraps a failure together with the component it came from."""

    def __init__(self, exception: BaseException, source: str = "Unknown", note: str = ""):
        super().__init__(f"<{source}> {note}: {exception}")
        self.exception = exception
        self.source = source
        self.note = note

    def __str__(self):
        return f"<{self.source}> {self.note}: {self.exception}"
