"""
Dispatch Engine
===============

Turns one input line into one handler call.

Role in the System
------------------
Front ends (the terminal loop, the TCP server, the config replay) hand
every line to ``DispatchEngine.process_line``. The engine:

    1. trims the line, ignores it if empty
    2. handles "end" (back to the top level) and, inside a context,
       "exit" (up one level)
    3. prefixes the context path:  "name Alice" → "set name Alice"
    4. parses against the session's grammar
         tokenizer rejects the line  → "Parse error"
         full match                  → run the handler
    5. otherwise expands abbreviations token by token:
         "sh ver" → "show version"
       and runs the handler if the expanded line matches
    6. otherwise, if the line is a single context-group keyword,
       enters that context
    7. otherwise reports "Unknown command"

Nothing a user types ends the session. Every outcome is written to the
session and returned as a DispatchResult so callers (and tests) can
tell what happened.

Abbreviation expansion is a second, different way of resolving the
line, tried once. It is not a retry.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from modecli import grammar
from modecli.config_manager import CliConfig
from modecli.grammar import ATTR_CALLBACK, ATTR_HANDLER, CompKind, Node, ParseNode
from modecli.localization import Localization
from modecli.registry import CommandRegistry
from modecli.session import DispatchMode, Session, SessionMode


NAV_END = "end"
NAV_EXIT = "exit"


class DispatchStatus(enum.Enum):
    EMPTY = "empty"
    NAVIGATED = "navigated"
    EXECUTED = "executed"
    FAILED = "failed"
    CONTEXT_ENTERED = "context_entered"
    PARSE_ERROR = "parse_error"
    UNKNOWN = "unknown"


@dataclass
class DispatchResult:
    """What happened to one input line.

    Attributes
    ----------
    status : DispatchStatus
    line : str
        The command that was finally parsed: the line with its context
        prefix, after abbreviation expansion if that was used.
    command : str or None
        Identifier of the command that ran (or failed).
    error : str or None
        The message shown to the user, if any.
    """
    status: DispatchStatus
    line: str
    command: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in (
            DispatchStatus.EMPTY,
            DispatchStatus.NAVIGATED,
            DispatchStatus.EXECUTED,
            DispatchStatus.CONTEXT_ENTERED,
        )


class DispatchEngine:
    """Resolves input lines to command handlers.

    Parameters
    ----------
    registry : CommandRegistry
        A built registry. Its grammar is the compiled grammar.
    localization : Localization, optional
        Output format overrides and alternate grammar.
    config : CliConfig, optional
        Prompt, banner and version shown to sessions.
    """

    def __init__(self, registry: CommandRegistry, localization: Optional[Localization] = None,
                 config: Optional[CliConfig] = None):
        if not registry.built:
            raise ValueError("Registry must be built before creating a dispatch engine")
        self.registry = registry
        self.localization = localization or Localization()
        self.config = config or CliConfig()
        self.grammar: Node = registry.grammar
        self.dispatch_mode = DispatchMode.DIRECT
        self.exit_handler: Optional[Callable[[], None]] = None
        self.logger = logging.getLogger(__name__)

    # ─── Sessions ────────────────────────────────────────────────────

    def use_grammar(self, tree: Node, dispatch_mode: DispatchMode) -> None:
        """Make ``tree`` the grammar of sessions created from now on."""
        self.grammar = tree
        self.dispatch_mode = dispatch_mode

    def new_session(self, writer: Optional[Callable[[str], None]] = None,
                    mode: SessionMode = SessionMode.LOCAL, peer: Optional[tuple] = None) -> Session:
        return Session(self, writer=writer, mode=mode, peer=peer)

    def request_exit(self) -> None:
        if self.exit_handler is not None:
            self.exit_handler()

    def dump_config(self, target) -> None:
        """Write the running configuration, honoring format overrides."""
        self.registry.outputs.dump(target, self.localization.formats)

    # ─── Dispatch ────────────────────────────────────────────────────

    def process_line(self, session: Session, line: str) -> DispatchResult:
        """Run one interactive input line."""
        line = line.strip()
        if not line:
            return DispatchResult(DispatchStatus.EMPTY, line)

        if line == NAV_END:
            session.exit_all_contexts()
            return DispatchResult(DispatchStatus.NAVIGATED, line)

        # at the top level "exit" is the quit alias in the grammar
        if line == NAV_EXIT and session.context.depth > 0:
            session.exit_context()
            return DispatchResult(DispatchStatus.NAVIGATED, line)

        full_cmd = session.context.build_full_command(line)
        return self._dispatch(session, line, full_cmd, interactive=True)

    def execute_command(self, session: Session, line: str) -> DispatchResult:
        """Run one configuration-file line.

        Same as ``process_line`` except that "end" and "exit" are not
        navigation words and a line that matches nothing is an error
        even if it names a context group.
        """
        line = line.strip()
        if not line:
            return DispatchResult(DispatchStatus.EMPTY, line)
        full_cmd = session.context.build_full_command(line)
        return self._dispatch(session, line, full_cmd, interactive=False)

    def _dispatch(self, session: Session, line: str, full_cmd: str, interactive: bool) -> DispatchResult:
        result = grammar.parse(session.grammar, full_cmd)
        if result is None:
            session.error("Parse error")
            return DispatchResult(DispatchStatus.PARSE_ERROR, full_cmd, error="Parse error")

        if result.matches:
            return self._invoke(session, result, full_cmd)

        expanded = self.expand_abbreviations(session.grammar, full_cmd)
        if expanded != full_cmd:
            retry = grammar.parse(session.grammar, expanded)
            if grammar.matches(retry):
                self.logger.debug(f"Expanded '{full_cmd}' to '{expanded}'")
                return self._invoke(session, retry, expanded)

        if interactive and len(line.split()) == 1 and self.registry.is_context_group(line):
            session.enter_context(line)
            return DispatchResult(DispatchStatus.CONTEXT_ENTERED, full_cmd)

        if interactive:
            message = f"Unknown command: {line}"
        else:
            message = f"Invalid configuration command: {line}"
        session.error(message)
        return DispatchResult(DispatchStatus.UNKNOWN, full_cmd, error=message)

    def expand_abbreviations(self, tree: Node, command: str) -> str:
        """Replace every token that has exactly one completion.

        Only the replaced tokens change. Whitespace and the other
        tokens are kept exactly as typed.

        Returns
        -------
        str
            The expanded command, or ``command`` itself when no token
            was replaced.
        """
        expanded: list[str] = []
        replacements: list[tuple[int, int, str]] = []

        for match in re.finditer(r"\S+", command):
            token = match.group(0)
            partial = " ".join(expanded + [token])
            candidates = [
                item for item in grammar.complete(tree, partial)
                if item.kind in (CompKind.FULL, CompKind.PARTIAL)
            ]
            if len(candidates) == 1 and candidates[0].string != token:
                expanded.append(candidates[0].string)
                replacements.append((match.start(), match.end(), candidates[0].string))
            else:
                expanded.append(token)

        for start, end, text in reversed(replacements):
            command = command[:start] + text + command[end:]
        return command

    def _invoke(self, session: Session, result: ParseNode, full_cmd: str) -> DispatchResult:
        identifier = result.find_attr(ATTR_CALLBACK)

        if session.dispatch_mode is DispatchMode.BY_IDENTIFIER:
            if identifier is None:
                return self._fail(session, full_cmd, None, "No callback attribute found in parse tree")
            handler = self.registry.handlers.lookup(identifier)
            if handler is None:
                return self._fail(session, full_cmd, identifier,
                                  f"No handler registered for callback: {identifier}")
        else:
            handler = result.find_attr(ATTR_HANDLER)

        if handler is None:
            return self._fail(session, full_cmd, identifier, "No handler for command")

        try:
            ok = handler(session, result)
        except Exception:
            self.logger.exception(f"Handler for '{identifier}' raised")
            ok = False

        if ok is False:
            return self._fail(session, full_cmd, identifier, "Command failed")
        return DispatchResult(DispatchStatus.EXECUTED, full_cmd, command=identifier)

    @staticmethod
    def _fail(session: Session, full_cmd: str, identifier: Optional[str], message: str) -> DispatchResult:
        session.error(message)
        return DispatchResult(DispatchStatus.FAILED, full_cmd, command=identifier, error=message)

    # ─── Config Replay ───────────────────────────────────────────────

    def load_config(self, session: Session, path: Union[str, Path]) -> int:
        """Replay a configuration file through the dispatcher.

        Blank lines and lines starting with ``!`` or ``#`` are skipped.
        Failing lines are counted and logged; replay continues.

        Returns
        -------
        int
            Number of lines that failed.

        Raises
        ------
        OSError
            If the file cannot be opened.
        """
        errors = 0
        with open(path, "r", encoding="utf-8") as f:
            for lineno, raw in enumerate(f, start=1):
                line = raw.strip()
                if not line or line[0] in "!#":
                    continue
                result = self.execute_command(session, line)
                if not result.ok:
                    errors += 1
                    self.logger.warning(f"Config error at line {lineno}: {line}")

        self.logger.info(f"Replayed {path} with {errors} error(s)")
        return errors
