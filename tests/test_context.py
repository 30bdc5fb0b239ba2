"""Tests for rxinsights.context - global and scoped diagnostic properties."""

import threading

from rxinsights import DiagnosticsContext, default_context


def test_global_properties():
    context = DiagnosticsContext()
    context.set("region", "eu")

    assert context.get("region") == "eu"
    assert "region" in context
    assert context.snapshot() == {"region": "eu"}

    context.remove("region")
    assert context.get("region", "none") == "none"
    context.remove("region")  # missing key is fine


def test_global_properties_are_visible_across_threads():
    context = DiagnosticsContext()
    seen = []

    def worker():
        seen.append(context.get("shared"))

    context.set("shared", 1)
    thread = threading.Thread(target=worker)
    thread.start()
    thread.join()

    assert seen == [1]


def test_nested_scopes():
    context = DiagnosticsContext()

    with context.scope(request="r1", user="u1"):
        with context.scope(request="r2"):
            assert context.scope_properties() == {"request": "r2", "user": "u1"}
        assert context.get_scoped("request") == "r1"

    assert context.scope_properties() == {}


def test_scope_is_not_shared_with_other_threads():
    context = DiagnosticsContext()
    seen = []

    def worker():
        seen.append(context.scope_properties())

    with context.scope(request="r1"):
        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()

    assert seen == [{}]


def test_snapshot_is_a_copy():
    context = DiagnosticsContext()
    context.set("a", 1)

    snapshot = context.snapshot()
    snapshot["b"] = 2

    assert "b" not in context


def test_default_context_is_shared():
    assert default_context() is default_context()
