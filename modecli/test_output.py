"""
Tests for templates and the serialization registry.

Run with:  python -m pytest modecli/test_output.py -v
"""

import io

from modecli.output import OutputRegistry, format_template


def emit_value(value):
    def emitter(out, template):
        out.emit(template, value=value)
    return emitter


def dump(registry, overrides=None):
    buf = io.StringIO()
    registry.dump(buf, overrides)
    return buf.getvalue()


# ============================================================
# Templates
# ============================================================

class TestFormatTemplate:
    """Tests for {name} placeholder substitution."""

    def test_named_values(self):
        assert format_template("set {a} {b}\n", {"a": 1, "b": "x"}) == "set 1 x\n"

    def test_none_renders_as_null(self):
        assert format_template("set {a}\n", {"a": None}) == "set (null)\n"

    def test_unknown_placeholder_kept(self):
        assert format_template("x {y} {z}", {"y": "1"}) == "x 1 {z}"

    def test_pairs_and_reordering(self):
        assert format_template("{b} {a}", [("a", "1"), ("b", "2")]) == "2 1"


# ============================================================
# Ordering
# ============================================================

class TestOrdering:
    """Tests for priority order of entries."""

    def test_ascending_priority_ties_keep_order(self):
        registry = OutputRegistry()
        registry.register("c", None, "", None, 50)
        registry.register("a", None, "", None, 10)
        registry.register("b", None, "", None, 50)
        registry.register("z", None, "", None, 5)
        assert [entry.identifier for entry in registry] == ["z", "a", "c", "b"]

    def test_duplicate_identifier_replaces_emitter(self):
        registry = OutputRegistry()
        first = emit_value("first")
        second = emit_value("second")
        registry.register("a", "g", "a {value}\n", first, 10)
        registry.register("a", "g", "a {value}\n", second, 99)
        assert len(registry) == 1
        assert registry.get("a").emitter is second
        assert registry.get("a").priority == 10


# ============================================================
# Dump
# ============================================================

class TestDump:
    """Tests for running-configuration output."""

    def test_group_markers(self):
        registry = OutputRegistry()
        registry.register("name", "greeting", "set name {value}\n", emit_value("Alice"), 10)
        registry.register("addr", "network", "set address {value}\n", emit_value("10.0.0.1"), 20)
        registry.register("mask", "network", "set mask {value}\n", emit_value("8"), 30)

        assert dump(registry) == (
            "! running configuration\n"
            "!\n"
            "! greeting configuration\n"
            "set name Alice\n"
            "! end greeting\n"
            "! network configuration\n"
            "set address 10.0.0.1\n"
            "set mask 8\n"
            "! end network\n"
            "!\n"
            "! end\n"
        )

    def test_empty_registry(self):
        assert dump(OutputRegistry()) == "! running configuration\n!\n!\n! end\n"

    def test_emitter_may_write_nothing(self):
        registry = OutputRegistry()
        registry.register("name", None, "set name {value}\n", lambda out, template: None, 10)
        assert "set name" not in dump(registry)

    def test_override_takes_precedence(self):
        registry = OutputRegistry()
        registry.register("name", None, "set name {value}\n", emit_value("Alice"), 10)
        text = dump(registry, {"name": "nom {value} !\n"})
        assert "nom Alice !\n" in text
        assert "set name" not in text

    def test_override_for_other_identifier_ignored(self):
        registry = OutputRegistry()
        registry.register("name", None, "set name {value}\n", emit_value("Alice"), 10)
        assert "set name Alice\n" in dump(registry, {"other": "x\n"})
