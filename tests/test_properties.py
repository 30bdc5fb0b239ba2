"""Tests for rxinsights.properties - property bag, collision renaming and collection."""

from datetime import UTC, datetime

import pytest

from conftest import make_event
from rxinsights import PropertyBag, PropertyCollector, TargetProperty, add_unique
from rxinsights.context import DiagnosticsContext
from rxinsights.properties import unique_key

# =============================================================================
# PropertyBag
# =============================================================================


class TestPropertyBag:
    """PropertyBag writes through to the wrapped dict as strings."""

    def test_values_are_stored_as_strings(self):
        backing: dict[str, str] = {}
        bag = PropertyBag(backing)

        bag["count"] = 3
        bag["flag"] = True
        bag["missing"] = None

        assert backing == {"count": "3", "flag": "True", "missing": ""}

    def test_dates_use_iso_format(self):
        backing: dict[str, str] = {}
        PropertyBag(backing)["when"] = datetime(2024, 5, 1, 12, 30, tzinfo=UTC)

        assert backing["when"] == "2024-05-01T12:30:00+00:00"

    def test_unconvertible_value_becomes_empty(self):
        class Broken:
            def __str__(self):
                raise RuntimeError("no text")

        backing: dict[str, str] = {}
        PropertyBag(backing)["bad"] = Broken()

        assert backing["bad"] == ""

    def test_mapping_operations(self):
        bag = PropertyBag({"a": "1", "b": "2"})

        assert len(bag) == 2
        assert "a" in bag
        assert list(bag) == ["a", "b"]
        del bag["a"]
        assert "a" not in bag
        with pytest.raises(KeyError):
            bag["a"]
        bag.clear()
        assert len(bag) == 0


# =============================================================================
# add_unique
# =============================================================================


class TestAddUnique:
    """First writer keeps the key; later differing values get numbered keys."""

    def test_new_key_is_added(self):
        sink: dict[str, str] = {}
        assert add_unique(sink, "Name", "a") == "Name"
        assert sink == {"Name": "a"}

    def test_same_value_is_not_duplicated(self):
        sink = {"Name": "a"}
        assert add_unique(sink, "Name", "a") is None
        assert sink == {"Name": "a"}

    def test_different_values_get_numbered_keys(self):
        sink = {"Name": "a"}

        assert add_unique(sink, "Name", "b") == "Name_1"
        assert add_unique(sink, "Name", "c") == "Name_2"
        assert sink == {"Name": "a", "Name_1": "b", "Name_2": "c"}

    def test_equality_compares_text(self):
        sink = PropertyBag({"Line": "10"})
        assert add_unique(sink, "Line", 10) is None

    def test_numbering_skips_taken_suffixes(self):
        sink = {"Name": "a", "Name_1": "x"}
        assert unique_key(sink, "Name") == "Name_2"


# =============================================================================
# PropertyCollector
# =============================================================================


class TestPropertyCollector:
    """Sources are merged in a fixed order through add_unique."""

    def test_event_properties_are_collected(self):
        sink: dict[str, str] = {}
        event = make_event(properties={"Name": "Value", "Count": 2})

        PropertyCollector().collect(event, PropertyBag(sink), DiagnosticsContext())

        assert sink == {"Name": "Value", "Count": "2"}

    def test_event_properties_can_be_excluded(self):
        sink: dict[str, str] = {}
        event = make_event(properties={"Name": "Value"})

        collector = PropertyCollector(include_event_properties=False)
        collector.collect(event, PropertyBag(sink), DiagnosticsContext())

        assert sink == {}

    def test_precedence_order(self):
        """Event properties, then context templates, then scope, then gdc."""
        context = DiagnosticsContext()
        context.set("Key", "from-gdc")
        collector = PropertyCollector(
            include_scope_properties=True,
            include_gdc=True,
            context_properties=[TargetProperty.of("Key", "from-template")],
        )
        sink: dict[str, str] = {}
        event = make_event(properties={"Key": "from-event"})

        with context.scope(Key="from-scope"):
            collector.collect(event, PropertyBag(sink), context)

        assert sink == {
            "Key": "from-event",
            "Key_1": "from-template",
            "Key_2": "from-scope",
            "Key_3": "from-gdc",
        }

    def test_context_property_is_rendered_per_event(self):
        collector = PropertyCollector(
            context_properties=[TargetProperty.of("Origin", "${logger}:${level}")]
        )
        sink: dict[str, str] = {}

        collector.collect(make_event(logger_name="svc"), PropertyBag(sink), DiagnosticsContext())

        assert sink == {"Origin": "svc:Debug"}

    def test_should_collect(self):
        plain = make_event()
        with_props = make_event(properties={"a": 1})

        assert not PropertyCollector().should_collect(plain)
        assert PropertyCollector().should_collect(with_props)
        assert not PropertyCollector(include_event_properties=False).should_collect(with_props)
        assert PropertyCollector(include_gdc=True).should_collect(plain)
        assert PropertyCollector(
            context_properties=[TargetProperty.of("a", "b")]
        ).should_collect(plain)
