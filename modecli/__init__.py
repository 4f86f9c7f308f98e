"""
modecli
=======

A framework for building router-style, modal command-line interfaces:
hierarchical commands with abbreviations, TAB completion, nested
configuration contexts, a replayable running configuration, built-in
documentation, and a translatable grammar. The same command set is
served on the local terminal or to a single TCP client.

Architecture Overview
---------------------

    ┌───────────────────┐  build() ┌──────────────────┐
    │ CommandRegistry   │─────────►│  grammar tree    │
    │ defun / group     │          │  (ShLex(Or ...)) │
    │ defun_set / out   │          └────────┬─────────┘
    └───────┬───────────┘                   │
            │ handlers, outputs, docs       │  or a translated tree
            ▼                               ▼  from Localization
    ┌───────────────────┐  line  ┌──────────────────┐
    │ TerminalInterface │───────►│  DispatchEngine  │──► handler(session, parse)
    │ TcpCliServer      │        │  context prefix  │
    │ config replay     │        │  abbreviations   │
    └───────────────────┘        └──────────────────┘

A program defines its commands on a CommandRegistry, builds it once,
and hands it to a CliApp. Every line typed goes through the
DispatchEngine, which owns nothing but the rules for turning a line
into a handler call. Sessions carry the per-user state: the context
stack (prompt and command prefix), the grammar in use, and where
output goes.

Quick Start
-----------

    from modecli import CliApp, CommandRegistry, register_builtins
    from modecli.argtypes import arg_name

    registry = CommandRegistry()
    register_builtins(registry)

    @registry.defun("hello", "hello name", "Say hello", arg_name("name", "Who"))
    def hello(session, parse):
        session.write(f"Hello, {parse.get_str('name')}!\\n")

    app = CliApp(registry)
    app.run()

See ``modecli.demo`` for a complete application with stateful
commands, a running configuration, and the TCP mode.
"""

from modecli.app import CliApp
from modecli.builtins import register_builtins
from modecli.config_manager import CliConfig, ModeCliConfig
from modecli.engine import DispatchEngine, DispatchResult, DispatchStatus
from modecli.errors import (
    CliError,
    GrammarDocumentError,
    GrammarInitError,
    RegistryFrozenError,
    ServerError,
)
from modecli.localization import Localization
from modecli.output import OutputRegistry, format_template
from modecli.registry import CommandDefinition, CommandGroup, CommandRegistry
from modecli.session import DispatchMode, Session, SessionMode

__version__ = "1.0.0"

__all__ = [
    "CliApp",
    "CliConfig",
    "CliError",
    "CommandDefinition",
    "CommandGroup",
    "CommandRegistry",
    "DispatchEngine",
    "DispatchMode",
    "DispatchResult",
    "DispatchStatus",
    "GrammarDocumentError",
    "GrammarInitError",
    "Localization",
    "ModeCliConfig",
    "OutputRegistry",
    "RegistryFrozenError",
    "ServerError",
    "Session",
    "SessionMode",
    "format_template",
    "register_builtins",
]
