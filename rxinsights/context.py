"""Explicit diagnostic context for log events.

``DiagnosticsContext`` replaces a process-wide static table: it is an ordinary
object handed to layouts and to the property collector. It holds two kinds of
properties:

- global properties, visible from every thread (``set``/``get``/``remove``);
- scoped properties, pushed with ``with context.scope(key=value):`` and visible
  only to the current thread or task (backed by :mod:`contextvars`).
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any


class DiagnosticsContext:
    """Thread-safe global properties plus contextvar-scoped properties."""

    def __init__(self, name: str = "default"):
        self.name = name
        self._lock = threading.Lock()
        self._global: dict[str, Any] = {}
        self._scoped: ContextVar[tuple[tuple[str, Any], ...]] = ContextVar(
            f"rxinsights.scope.{name}", default=()
        )

    # global properties ------------------------------------------------------

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._global[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._global.get(key, default)

    def remove(self, key: str) -> None:
        with self._lock:
            self._global.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._global.clear()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._global

    def snapshot(self) -> dict[str, Any]:
        """Return a copy of the global properties in insertion order."""
        with self._lock:
            return dict(self._global)

    # scoped properties ------------------------------------------------------

    @contextmanager
    def scope(self, **properties: Any) -> Iterator[None]:
        """Push ``properties`` for the duration of the ``with`` block."""
        token = self._scoped.set(self._scoped.get() + tuple(properties.items()))
        try:
            yield
        finally:
            self._scoped.reset(token)

    def scope_properties(self) -> dict[str, Any]:
        """Return the active scoped properties; inner scopes override outer ones."""
        return dict(self._scoped.get())

    def get_scoped(self, key: str, default: Any = None) -> Any:
        return self.scope_properties().get(key, default)


_default_context: DiagnosticsContext | None = None


def default_context() -> DiagnosticsContext:
    """Get or create the shared default context (lazy singleton)."""
    global _default_context

    if _default_context is None:
        _default_context = DiagnosticsContext()
    return _default_context
