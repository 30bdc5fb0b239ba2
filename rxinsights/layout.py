"""Renderable ``${...}`` templates.

A :class:`Layout` is compiled once from its template text into a list of
literal strings and renderer calls, then rendered per event::

    Layout("${uppercase:${level}} ${message}").render(event)
    Layout("${gdc:item=ConnectionString}").render(LogEvent.null_event(), context)

Renderer arguments follow the renderer name after ``:``; ``key=value`` pairs
are separated by ``:`` and a bare argument is stored under ``item``
(``${environment:HOME}`` is ``${environment:item=HOME}``). ``uppercase`` and
``lowercase`` wrap a nested template instead of taking arguments.

Unknown renderers and unbalanced braces raise ``ValueError`` when the layout
is built. Rendering never raises: a failing renderer contributes ``""``.
"""

import os
from collections.abc import Callable

from .context import DiagnosticsContext, default_context
from .events import LogEvent
from .utils import get_full_error_info, get_short_error_info, safe_str

RendererFn = Callable[[LogEvent, DiagnosticsContext, dict[str, str]], str]
_Part = str | Callable[[LogEvent, DiagnosticsContext], str]


def _render_exception(event: LogEvent, context: DiagnosticsContext, args: dict[str, str]) -> str:
    if event.error is None:
        return ""
    if args.get("format", "").lower() == "tostring":
        return get_full_error_info(event.error)
    return get_short_error_info(event.error)


def _item(args: dict[str, str]) -> str:
    if "item" not in args:
        raise ValueError("renderer requires an item argument")
    return args["item"]


RENDERERS: dict[str, RendererFn] = {
    "message": lambda ev, ctx, args: ev.formatted_message,
    "level": lambda ev, ctx, args: ev.level.display_name,
    "logger": lambda ev, ctx, args: ev.logger_name,
    "exception": _render_exception,
    "sequenceid": lambda ev, ctx, args: str(ev.sequence_id),
    "longdate": lambda ev, ctx, args: ev.timestamp.strftime("%Y-%m-%d %H:%M:%S.%f"),
    "newline": lambda ev, ctx, args: os.linesep,
    "gdc": lambda ev, ctx, args: safe_str(ctx.get(_item(args), "")),
    "scopeproperty": lambda ev, ctx, args: safe_str(ctx.get_scoped(_item(args), "")),
    "event-properties": lambda ev, ctx, args: safe_str(ev.properties.get(_item(args), "")),
    "environment": lambda ev, ctx, args: os.environ.get(_item(args), ""),
    "env": lambda ev, ctx, args: os.environ.get(_item(args), ""),
}

_WRAPPERS: dict[str, Callable[[str], str]] = {
    "uppercase": str.upper,
    "lowercase": str.lower,
}


def _parse_args(text: str) -> dict[str, str]:
    args: dict[str, str] = {}
    for chunk in text.split(":"):
        if not chunk:
            continue
        key, sep, value = chunk.partition("=")
        if sep:
            args[key.strip().lower()] = value
        else:
            args["item"] = chunk
    return args


def _find_closing(text: str, start: int) -> int:
    """Index of the ``}`` matching the ``${`` that opens at ``start``."""
    depth = 0
    i = start
    while i < len(text):
        if text.startswith("${", i):
            depth += 1
            i += 2
            continue
        if text[i] == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    raise ValueError(f"Unbalanced braces in layout: {text!r}")


def _compile_renderer(body: str) -> Callable[[LogEvent, DiagnosticsContext], str]:
    name, _, rest = body.partition(":")
    name = name.strip().lower()

    if name in _WRAPPERS:
        inner = _compile(rest)
        transform = _WRAPPERS[name]
        return lambda ev, ctx: transform(_render_parts(inner, ev, ctx))

    renderer = RENDERERS.get(name)
    if renderer is None:
        raise ValueError(f"Unknown layout renderer '{name}'.")
    args = _parse_args(rest)
    return lambda ev, ctx: renderer(ev, ctx, args)


def _compile(text: str) -> list[_Part]:
    parts: list[_Part] = []
    i = 0
    while i < len(text):
        start = text.find("${", i)
        if start < 0:
            parts.append(text[i:])
            break
        if start > i:
            parts.append(text[i:start])
        end = _find_closing(text, start)
        parts.append(_compile_renderer(text[start + 2 : end]))
        i = end + 1
    return parts


def _render_parts(parts: list[_Part], event: LogEvent, context: DiagnosticsContext) -> str:
    out = []
    for part in parts:
        if isinstance(part, str):
            out.append(part)
            continue
        try:
            out.append(part(event, context))
        except Exception:
            out.append("")
    return "".join(out)


class Layout:
    """A compiled ``${...}`` template."""

    def __init__(self, text: str = ""):
        self.text = text or ""
        self._parts = _compile(self.text)

    @classmethod
    def coerce(cls, value: "Layout | str | None") -> "Layout":
        if isinstance(value, Layout):
            return value
        return cls(value or "")

    @property
    def is_empty(self) -> bool:
        return not self.text

    def render(self, event: LogEvent, context: DiagnosticsContext | None = None) -> str:
        """Render for ``event``; returns ``""`` in place of any failing renderer."""
        ctx = context if context is not None else default_context()
        return _render_parts(self._parts, event, ctx)

    def __repr__(self) -> str:
        return f"Layout({self.text!r})"

    def __str__(self) -> str:
        return self.text
