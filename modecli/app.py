"""
Application object: wires a built registry to a front end.

    registry = CommandRegistry()
    register_builtins(registry)
    ...  (application commands)

    app = CliApp(registry, CliConfig(prompt="router> ", banner="Router"))
    app.load_config("startup.cfg")
    app.run()            # this terminal
    # or
    app.serve(2323)      # one TCP client on 127.0.0.1:2323
    app.close()

At startup the app looks for an alternate grammar document, named by
the environment variable in ``CliConfig.grammar_env`` (or by
``CliConfig.grammar_file`` when ``use_yaml`` is set). If it loads, all
sessions use it with identifier-based dispatch. If it does not, the
compiled grammar is used.
"""

from __future__ import annotations

import logging
import os
import signal
from pathlib import Path
from typing import Mapping, Optional, Union

from modecli.config_manager import CliConfig
from modecli.engine import DispatchEngine
from modecli.localization import Localization
from modecli.registry import CommandRegistry
from modecli.server import TcpCliServer
from modecli.session import DispatchMode, Session
from modecli.terminal import TerminalInterface


class CliApp:
    """A CLI application.

    Parameters
    ----------
    registry : CommandRegistry
        Command definitions. Built here if not built yet; a failure
        raises GrammarInitError.
    config : CliConfig, optional
    environ : Mapping, optional
        Environment used to find the alternate grammar. Defaults to
        ``os.environ``.
    """

    def __init__(self, registry: CommandRegistry, config: Optional[CliConfig] = None,
                 environ: Optional[Mapping[str, str]] = None):
        self.config = config or CliConfig()
        self.registry = registry
        self.logger = logging.getLogger(__name__)

        if not registry.built:
            registry.build()

        self.localization = Localization()
        self.engine = DispatchEngine(registry, self.localization, self.config)
        self.engine.exit_handler = self.request_exit
        self._select_grammar(os.environ if environ is None else environ)

        self.running = True
        self.server: Optional[TcpCliServer] = None
        self.terminal: Optional[TerminalInterface] = None
        self._session: Optional[Session] = None

    def _select_grammar(self, environ: Mapping[str, str]) -> None:
        path = environ.get(self.config.grammar_env)
        if not path and self.config.use_yaml:
            path = self.config.grammar_file
        if not path:
            return

        tree = self.localization.load(path)
        if tree is None:
            self.logger.warning(f"Using compiled grammar, could not load {path}")
            return
        self.engine.use_grammar(tree, DispatchMode.BY_IDENTIFIER)

    @property
    def session(self) -> Session:
        """The local session, created on first use."""
        if self._session is None:
            self._session = self.engine.new_session()
        return self._session

    def request_exit(self) -> None:
        self.running = False

    def install_signal_handlers(self) -> None:
        """Stop the run loops on SIGINT and SIGTERM."""
        def handler(signum, frame):
            self.logger.info(f"Received signal {signum}, shutting down")
            self.request_exit()

        signal.signal(signal.SIGINT, handler)
        signal.signal(signal.SIGTERM, handler)

    def load_config(self, path: Union[str, Path], session: Optional[Session] = None) -> int:
        """Replay a configuration file. Returns the number of failed lines.

        Raises
        ------
        OSError
            If the file cannot be opened.
        """
        return self.engine.load_config(session or self.session, path)

    def run(self, input_stream=None, interactive: Optional[bool] = None) -> None:
        """Interactive session on this terminal."""
        self.terminal = TerminalInterface(self.engine, self.session, input_stream, interactive)
        self.terminal.show_banner()
        self.terminal.run(lambda: self.running)

    def serve(self, port: int, host: str = "127.0.0.1", timeout: float = 0.5) -> None:
        """Serve one remote client at a time until exit is requested.

        Raises
        ------
        ServerError
            If the listener cannot be created.
        """
        self.server = TcpCliServer(self.engine, host, port)
        self.server.start()
        self.server.serve(lambda: self.running, timeout)

    def close(self) -> None:
        if self.server is not None:
            self.server.close()
            self.server = None
        self.terminal = None
        self._session = None
        self.logger.debug("CLI closed")
