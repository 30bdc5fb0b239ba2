"""Property merging for telemetry records.

``PropertyBag`` lets the one "collect all properties" routine write arbitrary
values into a record's ``dict[str, str]``. ``PropertyCollector`` is that
routine: it visits every property source of an event in a fixed order and
writes each entry through :func:`add_unique`, so the first writer keeps the
bare key and later values with the same key land under ``key_1``, ``key_2``...

Source order:

1. event properties (``include_event_properties``)
2. named context properties, each a :class:`Layout` rendered per event
3. scoped diagnostic-context properties (``include_scope_properties``)
4. global diagnostic-context properties (``include_gdc``)
"""

from collections.abc import Iterator, MutableMapping
from dataclasses import dataclass
from typing import Any

from .context import DiagnosticsContext
from .events import LogEvent
from .layout import Layout
from .utils import safe_str


class PropertyBag(MutableMapping[str, Any]):
    """``MutableMapping[str, Any]`` view over a ``dict[str, str]``.

    Values are converted with :func:`safe_str` on the way in; reads return
    the stored strings.
    """

    def __init__(self, wrapped: dict[str, str]):
        self.wrapped = wrapped

    def __getitem__(self, key: str) -> Any:
        return self.wrapped[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.wrapped[key] = safe_str(value)

    def __delitem__(self, key: str) -> None:
        del self.wrapped[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.wrapped)

    def __len__(self) -> int:
        return len(self.wrapped)

    def __contains__(self, key: object) -> bool:
        return key in self.wrapped

    def clear(self) -> None:
        self.wrapped.clear()

    def __repr__(self) -> str:
        return f"PropertyBag({self.wrapped!r})"


def unique_key(sink: MutableMapping[str, Any], key: str) -> str:
    """First of ``key_1``, ``key_2``, ... not present in ``sink``."""
    n = 1
    while f"{key}_{n}" in sink:
        n += 1
    return f"{key}_{n}"


def add_unique(sink: MutableMapping[str, Any], key: str, value: Any) -> str | None:
    """Add ``key -> value`` without overwriting an existing entry.

    Returns the key the value was stored under, or ``None`` when ``key``
    already holds the same value and nothing was added.
    """
    if key in sink:
        if safe_str(sink[key]) == safe_str(value):
            return None
        key = unique_key(sink, key)
    sink[key] = value
    return key


@dataclass(frozen=True)
class TargetProperty:
    """A named property whose value is a template rendered once per event."""

    name: str
    layout: Layout

    @classmethod
    def of(cls, name: str, layout: "Layout | str") -> "TargetProperty":
        return cls(name, Layout.coerce(layout))


class PropertyCollector:
    """Collects every configured property source of an event into a sink."""

    def __init__(
        self,
        *,
        include_event_properties: bool = True,
        include_scope_properties: bool = False,
        include_gdc: bool = False,
        context_properties: list[TargetProperty] | None = None,
    ):
        self.include_event_properties = include_event_properties
        self.include_scope_properties = include_scope_properties
        self.include_gdc = include_gdc
        self.context_properties: list[TargetProperty] = list(context_properties or [])

    def should_collect(self, event: LogEvent) -> bool:
        if self.context_properties:
            return True
        if self.include_event_properties and event.properties:
            return True
        return self.include_scope_properties or self.include_gdc

    def collect(
        self,
        event: LogEvent,
        sink: MutableMapping[str, Any],
        context: DiagnosticsContext,
    ) -> MutableMapping[str, Any]:
        if self.include_event_properties:
            for key, value in event.properties.items():
                add_unique(sink, key, value)

        for prop in self.context_properties:
            add_unique(sink, prop.name, prop.layout.render(event, context))

        if self.include_scope_properties:
            for key, value in context.scope_properties().items():
                add_unique(sink, key, value)

        if self.include_gdc:
            for key, value in context.snapshot().items():
                add_unique(sink, key, value)

        return sink
