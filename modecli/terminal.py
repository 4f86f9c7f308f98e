"""
Local interactive front end.

On a terminal the line editor is prompt_toolkit, with TAB completion
driven by the session's grammar and each candidate's help text shown
beside it. When input is not a terminal (a pipe, a test) lines are
read plainly and the prompt is written to the session's output.
"""

from __future__ import annotations

import logging
import sys
from typing import Callable, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import InMemoryHistory

from modecli import grammar
from modecli.grammar import CompKind
from modecli.session import Session


class GrammarCompleter(Completer):
    """prompt_toolkit completer backed by a session's grammar."""

    def __init__(self, session: Session):
        self.session = session

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        if text and not text[-1].isspace():
            word = text.split()[-1]
        else:
            word = ""

        full_cmd = self.session.context.build_full_command(text)
        for item in grammar.complete(self.session.grammar, full_cmd):
            if item.kind is CompKind.UNKNOWN or not item.string:
                continue
            yield Completion(item.string, start_position=-len(word), display_meta=item.help or "")


class TerminalInterface:
    """Reads lines for one local session and dispatches them.

    Parameters
    ----------
    engine : DispatchEngine
    session : Session, optional
        Defaults to a new local session writing to stdout.
    input_stream : file, optional
        Defaults to stdin.
    interactive : bool, optional
        Use prompt_toolkit. Defaults to True when both stdin and stdout
        are terminals.
    """

    def __init__(self, engine, session: Optional[Session] = None, input_stream=None,
                 interactive: Optional[bool] = None):
        self.engine = engine
        self.session = session or engine.new_session()
        self.input_stream = input_stream or sys.stdin
        if interactive is None:
            interactive = self.input_stream.isatty() and sys.stdout.isatty()
        self.logger = logging.getLogger(__name__)

        self._prompt_session = None
        if interactive:
            self._prompt_session = PromptSession(
                history=InMemoryHistory(),
                completer=GrammarCompleter(self.session),
                complete_while_typing=False,
            )

    def show_banner(self) -> None:
        config = self.engine.config
        if config.banner:
            self.session.write(f"{config.banner} v{config.version}\n")
        self.session.write("Type 'help' for commands, TAB for completion.\n")

    def read_line(self) -> Optional[str]:
        """Next input line, or None at end of input."""
        if self._prompt_session is not None:
            try:
                return self._prompt_session.prompt(self.session.prompt)
            except EOFError:
                return None

        self.session.show_prompt()
        line = self.input_stream.readline()
        if not line:
            return None
        return line.rstrip("\r\n")

    def run(self, keep_running: Callable[[], bool]) -> None:
        """Read and dispatch lines until end of input or exit."""
        while keep_running():
            try:
                line = self.read_line()
            except KeyboardInterrupt:
                self.session.write("\n")
                continue
            if line is None:
                self.session.write("\n")
                break
            self.engine.process_line(self.session, line)
        self.logger.debug("Terminal input loop finished")
