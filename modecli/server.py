"""
Single-client TCP front end.

The listener is bound to the loopback interface and multiplexed with
the one permitted client by ``select`` in a single thread. A second
client is told who holds the session and disconnected; the existing
session is not touched. A client that sends more than MAX_LINE_LENGTH
bytes without a newline is dropped.

    server = TcpCliServer(engine, port=2323)
    server.start()
    server.serve(lambda: app.running)
    server.close()
"""

from __future__ import annotations

import logging
import select
import socket
from typing import Callable, Optional

from modecli.errors import ServerError
from modecli.session import Session, SessionMode


MAX_LINE_LENGTH = 4096


class TcpCliServer:
    """Serves one remote CLI session at a time.

    Parameters
    ----------
    engine : DispatchEngine
        Runs the client's lines.
    host : str
        Listen address. Defaults to loopback.
    port : int
        Listen port. 0 picks a free port (see ``address``).
    """

    def __init__(self, engine, host: str = "127.0.0.1", port: int = 2323):
        self.engine = engine
        self.host = host
        self.port = port
        self.listener: Optional[socket.socket] = None
        self.client: Optional[socket.socket] = None
        self.session: Optional[Session] = None
        self._buffer = b""
        self.logger = logging.getLogger(__name__)

    @property
    def address(self) -> tuple:
        if self.listener is None:
            return (self.host, self.port)
        return self.listener.getsockname()[:2]

    def start(self) -> None:
        """Create the listening socket.

        Raises
        ------
        ServerError
            If the address cannot be bound.
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.listen(1)
        except OSError as e:
            sock.close()
            raise ServerError(f"Cannot listen on {self.host}:{self.port}: {e}") from e

        self.listener = sock
        host, port = self.address
        self.logger.info(f"CLI listening on {host}:{port}")

    def serve(self, keep_running: Callable[[], bool], timeout: float = 0.5) -> None:
        """Run until ``keep_running()`` is False, then drain once."""
        while keep_running():
            self.run_once(timeout)
        self.run_once(0)

    def run_once(self, timeout: float = 0.5) -> None:
        if self.listener is None:
            raise ServerError("Server is not started")

        sockets = [self.listener]
        if self.client is not None:
            sockets.append(self.client)

        readable, _, _ = select.select(sockets, [], [], timeout)
        for sock in readable:
            if sock is self.listener:
                self._accept()
            elif sock is self.client:
                self._read_client()

    def close(self) -> None:
        self._drop_client()
        if self.listener is not None:
            self.listener.close()
            self.listener = None
            self.logger.info("CLI listener closed")

    # ─── Connections ─────────────────────────────────────────────────

    def _accept(self) -> None:
        conn, addr = self.listener.accept()
        ip, port = addr[:2]

        if self.client is not None:
            active_ip, active_port = self.session.peer
            self.logger.warning(
                f"Rejected connection from {ip}:{port}, session active from {active_ip}:{active_port}"
            )
            try:
                conn.sendall(f"Another session is active from {active_ip}:{active_port}\r\n".encode())
            except OSError as e:
                self.logger.debug(f"Could not notify rejected client {ip}:{port}: {e}")
            finally:
                conn.close()
            return

        self.client = conn
        self._buffer = b""
        self.session = self.engine.new_session(writer=self._send, mode=SessionMode.REMOTE, peer=(ip, port))
        self.logger.info(f"Client connected from {ip}:{port}")

        config = self.engine.config
        if config.banner:
            self.session.write(f"{config.banner} v{config.version}\n")
        self.session.show_prompt()

    def _drop_client(self) -> None:
        if self.client is None:
            return
        peer = self.session.peer if self.session else None
        self.client.close()
        self.client = None
        self.session = None
        self._buffer = b""
        if peer:
            self.logger.info(f"Client {peer[0]}:{peer[1]} disconnected")

    def _send(self, text: str) -> None:
        if self.client is None:
            return
        data = text.replace("\r\n", "\n").replace("\n", "\r\n").encode("utf-8")
        try:
            self.client.sendall(data)
        except OSError as e:
            self.logger.warning(f"Send to client failed: {e}")
            self._drop_client()

    def _read_client(self) -> None:
        try:
            data = self.client.recv(4096)
        except OSError as e:
            self.logger.warning(f"Receive from client failed: {e}")
            self._drop_client()
            return

        if not data:
            self._drop_client()
            return

        self._buffer += data
        while b"\n" in self._buffer and self.session is not None:
            raw, self._buffer = self._buffer.split(b"\n", 1)
            line = raw.rstrip(b"\r").decode("utf-8", errors="replace")
            session = self.session
            self.engine.process_line(session, line)
            if self.session is session:
                session.show_prompt()

        if len(self._buffer) > MAX_LINE_LENGTH and self.session is not None:
            ip, port = self.session.peer
            self.logger.warning(f"Dropping client {ip}:{port}: line exceeds {MAX_LINE_LENGTH} bytes")
            self.session.error("Line too long")
            self._drop_client()
