"""
=============================================================================
TCP LISTENER
=============================================================================

Owns the listening socket: bind, listen and the accept loop. Every
accepted client socket is wrapped in a Connection and handed to the
server's callback.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         Listener.serve()                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   open()            socket() → setsockopt() → bind() → listen()     │
    │     │                  any failure  ──► ListenerOutcome(error)      │
    │     ▼                                                                │
    │   listening.set()                                                    │
    │     │                                                                │
    │     ▼                                                                │
    │   while running:                                                     │
    │       accept()      1 s timeout, so close() is noticed               │
    │       callback(Connection)                                           │
    │     │                                                                │
    │     ├── close() called     ──► ListenerOutcome()       (clean)      │
    │     └── accept() failed    ──► ListenerOutcome(error)  (fatal)      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

serve() never raises: its terminal result is returned as a
ListenerOutcome so the server can deliver it across threads.

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR   restart immediately while old connections sit in TIME_WAIT
TCP_NODELAY    no Nagle delay on small JSON responses (set per client)

SO_REUSEPORT is not set: a second process on the same port must fail to
bind rather than silently share it.

=============================================================================
"""

import socket
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class ListenerError(Exception):
    """The listener could not start or its accept loop failed."""


@dataclass(frozen=True)
class ListenerOutcome:
    """
    Terminal result of Listener.serve().

    ``error`` is None after a clean close() and a ListenerError otherwise.
    """

    error: Optional[ListenerError] = None

    @property
    def fatal(self) -> bool:
        return self.error is not None


class Listener:
    """
    Listening socket and accept loop.

        listener = Listener(config)
        outcome = listener.serve(handle_connection)   # blocks
        # from another thread:
        listener.close()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._closed = False
        self._lock = threading.Lock()

        self.listening = threading.Event()
        """Set once the socket is bound and listening."""

        self.finished = threading.Event()
        """Set when serve() returns, whatever the outcome."""

    @property
    def address(self) -> Optional[tuple[str, int]]:
        """The bound (host, port), or None before open()."""
        sock = self._socket
        if sock is None:
            return None
        try:
            host, port = sock.getsockname()[:2]
        except OSError:
            return None
        return host, port

    def open(self):
        """
        Create, bind and start listening.

        Raises:
            ListenerError: The port is not a valid port number, or the
                operating system refused bind()/listen().
        """
        try:
            port = int(self.config.port)
        except ValueError:
            raise ListenerError(f"listen tcp: invalid port {self.config.port!r}")
        if not 0 <= port <= 65535:
            raise ListenerError(f"listen tcp: invalid port {self.config.port!r}")

        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.config.host, port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            raise ListenerError(f"listen tcp {self.config.host}:{port}: {e.strerror or e}") from e

        sock.settimeout(1.0)

        with self._lock:
            if self._closed:
                # close() won the race; serve() ends with a clean outcome.
                sock.close()
                return
            self._socket = sock
            self._running = True

        self.listening.set()
        logger.debug("Listening on %s:%d", *self.address)

    def serve(self, on_connection: Callable[[Connection], None]) -> ListenerOutcome:
        """
        Open the socket (if needed) and run the accept loop until close().

        Args:
            on_connection: Called on the listener thread for every accepted
                connection; must return quickly (hand off to a thread).
        """
        try:
            if self._socket is None and not self._closed:
                self.open()
            return self._accept_loop(on_connection)
        except ListenerError as e:
            return ListenerOutcome(error=e)
        finally:
            self._cleanup()
            self.finished.set()

    def _accept_loop(self, on_connection: Callable[[Connection], None]) -> ListenerOutcome:
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break
                raise ListenerError(f"accept: {e}") from e

            client_socket.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            conn = Connection.from_config(client_socket, client_address, self.config)
            logger.debug("[%s] Accepted connection from %s:%d", conn.id, *conn.address)

            on_connection(conn)

        return ListenerOutcome()

    def close(self):
        """
        Stop accepting. Idempotent and safe from any thread.

        Connections already accepted are not touched.
        """
        with self._lock:
            self._closed = True
            self._running = False
            sock = self._socket

        if sock is not None:
            try:
                sock.close()
            except OSError:
                pass

    def _cleanup(self):
        with self._lock:
            self._running = False
            sock, self._socket = self._socket, None
        if sock is not None:
            try:
                sock.close()
            except OSError:
                pass
