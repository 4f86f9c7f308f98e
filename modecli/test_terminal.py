"""
Tests for the local front end.

Run with:  python -m pytest modecli/test_terminal.py -v
"""

import io
from unittest import mock

from prompt_toolkit.document import Document

from modecli.terminal import GrammarCompleter, TerminalInterface


def completions(session, text):
    return list(GrammarCompleter(session).get_completions(Document(text), None))


# ============================================================
# Completion
# ============================================================

class TestGrammarCompleter:
    """Tests for TAB completion."""

    def test_keyword_prefix(self, session):
        items = completions(session, "sh")
        assert [item.text for item in items] == ["show"]
        assert items[0].start_position == -2
        assert items[0].display_meta_text == "Display information"

    def test_second_word(self, session):
        items = completions(session, "show ver")
        assert [item.text for item in items] == ["version"]
        assert items[0].start_position == -3

    def test_after_space(self, session):
        texts = [item.text for item in completions(session, "del ")]
        assert texts == ["address"]

    def test_typed_slot_offers_nothing(self, session):
        assert completions(session, "set name ") == []

    def test_inside_context(self, session):
        session.enter_context("set")
        texts = [item.text for item in completions(session, "")]
        assert texts == ["name", "address"]


# ============================================================
# Input loop
# ============================================================

class TestTerminalInterface:
    """Tests for the plain (non-TTY) input loop."""

    def test_banner(self, engine, session, output):
        terminal = TerminalInterface(engine, session, io.StringIO(""), interactive=False)
        terminal.show_banner()
        assert output.text == (
            "ECLI Minimal Example v1.0.0\n"
            "Type 'help' for commands, TAB for completion.\n"
        )

    def test_runs_until_end_of_input(self, engine, session, output):
        stream = io.StringIO("hello\nset\nname Bob\nshow name\n")
        terminal = TerminalInterface(engine, session, stream, interactive=False)
        terminal.run(lambda: True)
        assert output.text == (
            "minimal> Hello, world!\n"
            "minimal> "
            "minimal(set)> Name set to 'Bob'\n"
            "minimal(set)> Error: Unknown command: show name\n"
            "minimal(set)> \n"
        )

    def test_stops_when_asked(self, engine, session, output):
        running = [True]
        engine.exit_handler = lambda: running.__setitem__(0, False)
        stream = io.StringIO("quit\nhello\n")
        terminal = TerminalInterface(engine, session, stream, interactive=False)
        terminal.run(lambda: running[0])
        assert "Hello" not in output.text
        assert output.text.endswith("Goodbye!\n")

    def test_interrupt_clears_the_line(self, engine, session, output):
        stream = mock.Mock()
        stream.readline.side_effect = [KeyboardInterrupt, "hello\n", ""]
        terminal = TerminalInterface(engine, session, stream, interactive=False)
        terminal.run(lambda: True)
        assert output.text == "minimal> \nminimal> Hello, world!\nminimal> \n"
