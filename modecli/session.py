"""
Sessions: one per connected client, or one for the local terminal user.

A session owns its context stack and knows where its output goes.
Command handlers receive the session as their first argument and talk
to the user only through it:

    def show_name(session, parse):
        session.write(f"Name: {state.name}\\n")
"""

from __future__ import annotations

import enum
import sys
from typing import TYPE_CHECKING, Callable, Optional

from modecli.context import ContextStack

if TYPE_CHECKING:
    from modecli.engine import DispatchEngine
    from modecli.grammar import Node


class SessionMode(enum.Enum):
    LOCAL = "local"
    REMOTE = "remote"


class DispatchMode(enum.Enum):
    """How a matched command is resolved to its handler.

    DIRECT reads the function reference stored on the grammar node.
    BY_IDENTIFIER reads the command identifier and looks the handler
    up in the HandlerTable; used for grammars loaded from documents.
    """
    DIRECT = "direct"
    BY_IDENTIFIER = "by_identifier"


def _stdout_write(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


class Session:
    """State of one CLI conversation.

    Parameters
    ----------
    engine : DispatchEngine
        The engine that will run this session's lines. The session
        starts with the engine's active grammar and dispatch mode.
    writer : callable, optional
        ``writer(text)`` receives all output. Defaults to stdout.
    mode : SessionMode
        LOCAL for the terminal user, REMOTE for a TCP client.
    peer : tuple, optional
        (ip, port) of a remote client.
    """

    def __init__(self, engine: DispatchEngine, writer: Optional[Callable[[str], None]] = None,
                 mode: SessionMode = SessionMode.LOCAL, peer: Optional[tuple] = None):
        self.engine = engine
        self.mode = mode
        self.peer = peer
        self.grammar: Node = engine.grammar
        self.dispatch_mode: DispatchMode = engine.dispatch_mode
        self.context = ContextStack(engine.config.prompt)
        self._writer = writer or _stdout_write

    def __repr__(self) -> str:
        where = f"{self.peer[0]}:{self.peer[1]}" if self.peer else "local"
        return f"Session({self.mode.value}, {where}, depth={self.context.depth})"

    @property
    def prompt(self) -> str:
        return self.context.prompt

    def write(self, text: str) -> None:
        self._writer(text)

    def error(self, text: str) -> None:
        self._writer(f"Error: {text}\n")

    def show_prompt(self) -> None:
        self._writer(self.context.prompt)

    def enter_context(self, name: str) -> None:
        self.context.enter(name)

    def exit_context(self) -> bool:
        if not self.context.exit():
            self.write("Already at top level\n")
            return False
        return True

    def exit_all_contexts(self) -> None:
        self.context.exit_all()

    def request_exit(self) -> None:
        self.engine.request_exit()
