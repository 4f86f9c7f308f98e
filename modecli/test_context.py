"""
Tests for the context stack.

Run with:  python -m pytest modecli/test_context.py -v
"""

from modecli.context import ContextStack


# ============================================================
# Prompt
# ============================================================

class TestPrompt:
    """Tests for prompt computation."""

    def test_top_level_uses_base_prompt(self):
        assert ContextStack("router> ").prompt == "router> "

    def test_nested_path(self):
        stack = ContextStack("router> ")
        stack.enter("interface")
        assert stack.prompt == "router(interface)> "
        stack.enter("eth0")
        assert stack.prompt == "router(interface-eth0)> "

    def test_hash_indicator_without_space(self):
        stack = ContextStack("router#")
        stack.enter("set")
        assert stack.prompt == "router(set)> "

    def test_no_indicator(self):
        stack = ContextStack("cli")
        stack.enter("set")
        assert stack.prompt == "cli(set)> "


# ============================================================
# Navigation
# ============================================================

class TestNavigation:
    """Tests for entering and leaving contexts."""

    def test_exit_pops_one_level(self):
        stack = ContextStack("router> ")
        stack.enter("interface")
        stack.enter("eth0")
        assert stack.exit() is True
        assert stack.frames == ["interface"]
        assert stack.prompt == "router(interface)> "

    def test_exit_at_top_level(self):
        stack = ContextStack("router> ")
        assert stack.exit() is False
        assert stack.depth == 0
        assert stack.prompt == "router> "

    def test_exit_all(self):
        stack = ContextStack("router> ")
        stack.enter("interface")
        stack.enter("eth0")
        stack.exit_all()
        assert len(stack) == 0
        assert stack.prompt == "router> "

    def test_build_full_command(self):
        stack = ContextStack("router> ")
        assert stack.build_full_command("show version") == "show version"
        stack.enter("interface")
        stack.enter("eth0")
        assert stack.build_full_command("mtu 1500") == "interface eth0 mtu 1500"
