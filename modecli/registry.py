"""
Grammar Assembly Registry
=========================

Collects command definitions from anywhere in a program and assembles
the command grammar once, in a fixed order that does not depend on the
order the definitions were written in.

Role in the System
------------------
Modules describe their commands with decorators at import time:

    registry = CommandRegistry()
    set_grp = registry.group("set", "Set configuration values")

    @registry.defun_set(set_grp, "set_name", "name value", "Set the name",
                        "set name {value}\\n", "greeting", 10,
                        arg_name("value", "Name to greet"))
    def set_name(session, parse):
        state.name = parse.get_str("value")

    @registry.defun_out("set_name")
    def set_name_out(out, template):
        if state.name != "world":
            out.emit(template, value=state.name)

Nothing is built until the program calls ``registry.build()``. Each
definition has queued an initializer with a priority, and ``build``
runs all of them in ascending priority order, exactly once:

    110  PRIO_ROOT      create the root alternative node
    115  PRIO_GROUP     create one alternative node per group
    120  PRIO_COMMAND   attach each command to the root or its group,
                        register its handler and serialization entry
    125  PRIO_ATTACH    attach each group to the root as
                        "<keyword> <group commands>"
    190  PRIO_FINALIZE  wrap the root in the shell-style tokenizer

After ``build`` the registry is frozen: defining anything else raises
RegistryFrozenError.

Every command node carries three attributes: ``help``, ``callback``
(the stable identifier) and ``handler`` (the Python function). The
dispatch engine uses ``handler`` directly, or looks ``callback`` up in
the HandlerTable when a localized grammar without function references
is active.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from modecli.errors import GrammarInitError, RegistryFrozenError
from modecli.grammar import (
    ATTR_CALLBACK,
    ATTR_HANDLER,
    Cmd,
    Node,
    Or,
    Seq,
    ShLex,
    Str,
)
from modecli.output import OutputRegistry


PRIO_ROOT = 110
PRIO_GROUP = 115
PRIO_COMMAND = 120
PRIO_ATTACH = 125
PRIO_FINALIZE = 190

Handler = Callable[..., Optional[bool]]


# ─── Descriptors ─────────────────────────────────────────────────────


class CommandGroup:
    """A keyword that prefixes a family of commands (``show``, ``set``).

    The grammar node is created during ``build`` at PRIO_GROUP.
    Context groups can also be entered as a mode by typing the keyword
    on its own.
    """

    def __init__(self, keyword: str, help: Optional[str] = None, context: bool = True):
        self.keyword = keyword
        self.help = help
        self.context = context
        self.node: Optional[Or] = None

    def __repr__(self) -> str:
        return f"CommandGroup({self.keyword!r})"


@dataclass(frozen=True)
class CommandDefinition:
    """Everything needed to attach one command to the grammar.

    Attributes
    ----------
    identifier : str
        Stable, unique command identifier. Survives translation of
        the grammar and keys output format overrides.
    syntax : str
        Command expression relative to the parent group,
        e.g. ``"name value"``.
    help : str
        One-line help shown by ``help`` and completion.
    handler : callable
        ``handler(session, parse)``. Returning False reports failure.
    args : tuple of Node
        Argument nodes referenced by id in ``syntax``.
    parent : CommandGroup or None
        Group the command lives in. None for top-level commands.
    node : Node or None
        Prebuilt grammar node, used instead of compiling ``syntax``.
    template, out_group, priority
        Serialization entry of a stateful command. ``template`` is
        None for commands with no state to dump.
    """
    identifier: str
    syntax: str
    help: str
    handler: Handler
    args: tuple = ()
    parent: Optional[CommandGroup] = None
    node: Optional[Node] = None
    template: Optional[str] = None
    out_group: Optional[str] = None
    priority: int = 100

    @property
    def is_stateful(self) -> bool:
        return self.template is not None


@dataclass(frozen=True)
class DocEntry:
    identifier: str
    description: str
    examples: Optional[str] = None


class HandlerTable:
    """Name-indirected dispatch table: identifier → handler."""

    def __init__(self):
        self._handlers: dict[str, Handler] = {}

    def __contains__(self, identifier) -> bool:
        return identifier in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def register(self, identifier: str, handler: Handler) -> None:
        self._handlers[identifier] = handler

    def lookup(self, identifier: str) -> Optional[Handler]:
        return self._handlers.get(identifier)


class DocTable:
    """Optional extended documentation, keyed by command identifier."""

    def __init__(self):
        self._entries: dict[str, DocEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def register(self, identifier: str, description: str, examples: Optional[str] = None) -> DocEntry:
        entry = DocEntry(identifier, description, examples)
        self._entries[identifier] = entry
        return entry

    def get(self, identifier: str) -> Optional[DocEntry]:
        return self._entries.get(identifier)


# ─── Registry ────────────────────────────────────────────────────────


class CommandRegistry:
    """Owner of the grammar tree, handler table, serialization
    registry and documentation table.

    One instance per program (or per test). Pass it to the dispatch
    engine after ``build()``.
    """

    def __init__(self):
        self.handlers = HandlerTable()
        self.outputs = OutputRegistry()
        self.docs = DocTable()
        self.definitions: list[CommandDefinition] = []
        self.emitters: dict[str, Callable] = {}
        self.groups: dict[str, CommandGroup] = {}
        self.context_groups: list[str] = []
        self.root: Optional[Or] = None
        self.grammar: Optional[ShLex] = None
        self._initializers: list[tuple[int, int, Callable[[], None]]] = []
        self._built = False
        self.logger = logging.getLogger(__name__)

        self.add_initializer(PRIO_ROOT, self._create_root)
        self.add_initializer(PRIO_FINALIZE, self._finalize)

    @property
    def built(self) -> bool:
        return self._built

    def _check_open(self) -> None:
        if self._built:
            raise RegistryFrozenError("Command grammar is already built; no more definitions allowed")

    # ─── Build ───────────────────────────────────────────────────────

    def add_initializer(self, priority: int, func: Callable[[], None]) -> None:
        """Queue ``func`` to run during ``build`` at ``priority``.

        Initializers with equal priority run in the order they were
        added.
        """
        self._check_open()
        self._initializers.append((priority, len(self._initializers), func))

    def build(self) -> ShLex:
        """Run all initializers and return the finished grammar.

        Raises
        ------
        RegistryFrozenError
            If the grammar was already built.
        GrammarInitError
            If any initializer fails. Nothing built by earlier phases is kept.
        """
        self._check_open()
        self._built = True

        priority = None
        try:
            for priority, _, func in sorted(self._initializers, key=lambda item: item[:2]):
                func()
        except Exception as e:
            self.root = None
            self.grammar = None
            self.handlers = HandlerTable()
            self.outputs = OutputRegistry()
            self.context_groups = []
            for group in self.groups.values():
                group.node = None
            raise GrammarInitError(f"Grammar initialization failed at priority {priority}: {e}") from e

        self.logger.debug(
            f"Built grammar: {len(self.definitions)} command(s), "
            f"{len(self.groups)} group(s), {len(self.outputs)} output entries"
        )
        return self.grammar

    def _create_root(self) -> None:
        self.root = Or(None)

    def _finalize(self) -> None:
        self.grammar = ShLex(None, self.root)

    def _create_group(self, group: CommandGroup) -> None:
        group.node = Or(None)
        if group.context:
            self.context_groups.append(group.keyword)

    def _attach_group(self, group: CommandGroup) -> None:
        keyword = Str(None, group.keyword).with_help(group.help)
        self.root.add(Seq(None, keyword, group.node).with_help(group.help))

    def _attach_command(self, defn: CommandDefinition) -> None:
        node = defn.node if defn.node is not None else self._make_node(defn.syntax, defn.args)
        node.with_help(defn.help)
        node.set_attr(ATTR_CALLBACK, defn.identifier)
        node.set_attr(ATTR_HANDLER, defn.handler)

        if defn.parent is None:
            parent = self.root
        else:
            parent = defn.parent.node
            if parent is None:
                raise GrammarInitError(f"Group '{defn.parent.keyword}' was not created")
        parent.add(node)

        self.handlers.register(defn.identifier, defn.handler)
        if defn.is_stateful:
            self.outputs.register(defn.identifier, defn.out_group, defn.template,
                                  self.emitters.get(defn.identifier), defn.priority)

    @staticmethod
    def _make_node(syntax: str, args) -> Node:
        words = syntax.split()
        if not args and len(words) == 1 and not any(c in syntax for c in "[]()|"):
            return Str(None, words[0])
        return Cmd(None, syntax, *args)

    # ─── Definitions ─────────────────────────────────────────────────

    def define(self, defn: CommandDefinition) -> CommandDefinition:
        self._check_open()
        self.definitions.append(defn)
        self.add_initializer(PRIO_COMMAND, lambda: self._attach_command(defn))
        return defn

    def group(self, keyword: str, help: Optional[str] = None, context: bool = True) -> CommandGroup:
        """Create a command group, or return the existing one.

        Groups defined by one module (``show`` by the built-ins) can be
        extended by any other module that asks for the same keyword.
        """
        existing = self.groups.get(keyword)
        if existing is not None:
            if help and not existing.help:
                existing.help = help
            return existing

        self._check_open()
        group = CommandGroup(keyword, help, context)
        self.groups[keyword] = group
        self.add_initializer(PRIO_GROUP, lambda: self._create_group(group))
        self.add_initializer(PRIO_ATTACH, lambda: self._attach_group(group))
        return group

    def defun(self, identifier: str, syntax: str, help: str, *args: Node):
        """Decorator: top-level command."""
        def decorator(handler):
            self.define(CommandDefinition(identifier, syntax, help, handler, args))
            return handler
        return decorator

    def defun_sub(self, group: CommandGroup, identifier: str, syntax: str, help: str, *args: Node):
        """Decorator: command inside ``group``."""
        def decorator(handler):
            self.define(CommandDefinition(identifier, syntax, help, handler, args, parent=group))
            return handler
        return decorator

    def defun_sub_node(self, group: Optional[CommandGroup], identifier: str, help: str, node: Node):
        """Decorator: command whose grammar node is built by hand."""
        def decorator(handler):
            self.define(CommandDefinition(identifier, identifier, help, handler,
                                          parent=group, node=node))
            return handler
        return decorator

    def defun_set(self, group: Optional[CommandGroup], identifier: str, syntax: str, help: str,
                  template: str, out_group: Optional[str], priority: int, *args: Node):
        """Decorator: stateful command that also appears in the
        running configuration. Pair it with ``defun_out``."""
        def decorator(handler):
            self.define(CommandDefinition(identifier, syntax, help, handler, args,
                                          parent=group, template=template,
                                          out_group=out_group, priority=priority))
            return handler
        return decorator

    def defun_out(self, identifier: str):
        """Decorator: emitter for the stateful command ``identifier``."""
        def decorator(emitter):
            self._check_open()
            self.emitters[identifier] = emitter
            return emitter
        return decorator

    def defun_alias(self, syntax: str, help: str, target: Handler,
                    group: Optional[CommandGroup] = None, *args: Node) -> CommandDefinition:
        """Second syntax for an already defined handler.

        The alias shares the identifier of the original command, so it
        keeps working under a localized grammar.

        Raises
        ------
        ValueError
            If ``target`` was not defined with one of the decorators.
        """
        original = self.find_definition(handler=target)
        if original is None:
            raise ValueError(f"Cannot alias undefined handler {target!r}")
        return self.define(CommandDefinition(original.identifier, syntax, help, target, args,
                                             parent=group))

    def doc(self, identifier: str, description: str, examples: Optional[str] = None) -> DocEntry:
        return self.docs.register(identifier, description, examples)

    # ─── Lookup ──────────────────────────────────────────────────────

    def find_definition(self, identifier: Optional[str] = None,
                        handler: Optional[Handler] = None) -> Optional[CommandDefinition]:
        for defn in self.definitions:
            if identifier is not None and defn.identifier == identifier:
                return defn
            if handler is not None and defn.handler is handler:
                return defn
        return None

    def is_context_group(self, keyword: str) -> bool:
        return keyword in self.context_groups
