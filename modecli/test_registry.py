"""
Tests for the grammar assembly registry.

Run with:  python -m pytest modecli/test_registry.py -v
"""

import pytest

from modecli import grammar
from modecli.argtypes import arg_name
from modecli.builtins import register_builtins
from modecli.errors import GrammarInitError, RegistryFrozenError
from modecli.registry import PRIO_ATTACH, PRIO_COMMAND, CommandRegistry


def noop(session, parse):
    pass


# ============================================================
# Build phases
# ============================================================

class TestBuild:
    """Tests for deferred, priority-ordered assembly."""

    def test_commands_may_be_defined_in_any_order(self):
        registry = CommandRegistry()
        registry.defun("hello", "hello", "Say hello")(noop)
        show = registry.group("show", "Display information")
        registry.defun_sub(show, "show_version", "version", "Version")(noop)
        registry.defun("bye", "bye", "Say bye")(noop)

        tree = registry.build()
        assert tree is registry.grammar
        for line in ("hello", "show version", "bye"):
            assert grammar.matches(grammar.parse(tree, line)), line

    def test_group_keyword_alone_is_not_a_command(self):
        registry = CommandRegistry()
        show = registry.group("show")
        registry.defun_sub(show, "show_version", "version", "Version")(noop)
        registry.build()
        assert not grammar.matches(grammar.parse(registry.grammar, "show"))

    def test_initializers_run_by_priority(self):
        registry = CommandRegistry()
        calls = []
        registry.add_initializer(150, lambda: calls.append("late"))
        registry.add_initializer(100, lambda: calls.append("early"))
        registry.add_initializer(150, lambda: calls.append("late-2"))
        registry.build()
        assert calls == ["early", "late", "late-2"]

    def test_failure_is_fatal(self):
        registry = CommandRegistry()
        registry.defun("hello", "hello", "Say hello")(noop)

        def boom():
            raise ValueError("no memory")

        registry.add_initializer(PRIO_COMMAND, boom)
        with pytest.raises(GrammarInitError, match="priority 120"):
            registry.build()
        assert registry.grammar is None
        assert registry.root is None

    def test_failure_leaves_no_partial_tables(self):
        registry = CommandRegistry()
        grp = registry.group("set", "Set values")
        registry.defun_set(grp, "set_name", "name value", "Set the name",
                           "set name {value}\n", "greeting", 10,
                           arg_name("value"))(noop)

        def boom():
            raise ValueError("late failure")

        registry.add_initializer(PRIO_ATTACH, boom)
        with pytest.raises(GrammarInitError, match="priority 125"):
            registry.build()

        assert len(registry.handlers) == 0
        assert len(registry.outputs) == 0
        assert not registry.is_context_group("set")
        assert grp.node is None

    def test_second_build_rejected(self, registry):
        with pytest.raises(RegistryFrozenError):
            registry.build()

    def test_definitions_after_build_rejected(self, registry):
        with pytest.raises(RegistryFrozenError):
            registry.defun("late", "late", "Too late")(noop)
        with pytest.raises(RegistryFrozenError):
            registry.group("late")
        with pytest.raises(RegistryFrozenError):
            registry.defun_out("set_name")(noop)


# ============================================================
# Command nodes
# ============================================================

class TestCommandNodes:
    """Tests for what a command contributes to the grammar."""

    def test_node_attributes(self, registry):
        result = grammar.parse(registry.grammar, "set name Bob")
        assert result.matches
        handler = registry.find_definition("set_name").handler
        assert result.find_attr("callback") == "set_name"
        assert result.find_attr("handler") is handler
        assert result.find_attr("help") == "Configure settings"

    def test_handler_table(self, registry):
        assert "set_name" in registry.handlers
        assert registry.handlers.lookup("set_name") is registry.find_definition("set_name").handler
        assert registry.handlers.lookup("nope") is None

    def test_alias_shares_identifier(self, registry):
        result = grammar.parse(registry.grammar, "?")
        assert result.find_attr("callback") == "help"
        result = grammar.parse(registry.grammar, "exit")
        assert result.find_attr("callback") == "quit"

    def test_alias_of_unknown_handler(self):
        registry = CommandRegistry()
        with pytest.raises(ValueError, match="Cannot alias"):
            registry.defun_alias("bye", "Leave", noop)

    def test_argument_value(self, registry):
        result = grammar.parse(registry.grammar, "set name Bob")
        assert result.get_str("value") == "Bob"

    def test_prebuilt_node(self):
        registry = CommandRegistry()
        node = grammar.Seq(None, grammar.Str(None, "greet"), arg_name("who"))
        registry.defun_sub_node(None, "greet", "Greet someone", node)(noop)
        registry.build()
        result = grammar.parse(registry.grammar, "greet bob")
        assert result.find_attr("callback") == "greet"


# ============================================================
# Groups
# ============================================================

class TestGroups:
    """Tests for command groups and context groups."""

    def test_group_is_shared(self):
        registry = CommandRegistry()
        show, _ = register_builtins(registry)
        assert registry.group("show") is show

    def test_context_groups(self, registry):
        assert registry.is_context_group("set")
        assert registry.is_context_group("del")
        assert registry.is_context_group("show")
        assert registry.is_context_group("write")
        assert not registry.is_context_group("hello")

    def test_group_can_opt_out_of_context(self):
        registry = CommandRegistry()
        grp = registry.group("ping", "Reachability", context=False)
        registry.defun_sub(grp, "ping_host", "host", "Ping a host")(lambda session, parse: None)
        registry.build()
        assert not registry.is_context_group("ping")


# ============================================================
# Serialization entries and docs
# ============================================================

class TestRegistryTables:
    """Tests for the output entries and documentation table."""

    def test_only_stateful_commands_have_entries(self, registry):
        assert [entry.identifier for entry in registry.outputs] == ["set_name", "set_address"]

    def test_entry_details(self, registry):
        entry = registry.outputs.get("set_name")
        assert entry.group == "greeting"
        assert entry.template == "set name {value}\n"
        assert entry.priority == 10
        assert entry.emitter is registry.emitters["set_name"]

    def test_is_stateful(self, registry):
        assert registry.find_definition("set_name").is_stateful
        assert not registry.find_definition("hello").is_stateful

    def test_doc_entries(self, registry):
        entry = registry.docs.get("set_name")
        assert "hello" in entry.description
        assert entry.examples.startswith("set name Alice")
        assert registry.docs.get("hello") is None
