"""
=============================================================================
STATUS SERVER
=============================================================================

The orchestrator: owns the listener, the connection threads and the
shutdown sequence.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         HTTPServer                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   main thread           listener thread         connection threads  │
    │   ───────────           ───────────────         ──────────────────  │
    │   run()                 Listener.serve()        _process_connection │
    │     │                     │ accept()              read → parse      │
    │     │ wait for first      │   └─► thread ───────► router → write    │
    │     │ of:                 │       per conn        (keep-alive loop) │
    │     │   signal flag       │                                         │
    │     │   outcome queue ◄───┘ ListenerOutcome                         │
    │     ▼                                                                │
    │   shutdown() / close()                                               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SHUTDOWN SEQUENCE
=============================================================================

    SIGINT / SIGTERM / request_shutdown()
        │
        ▼
    "Received shutdown signal: SIGTERM"
    "Attempting graceful shutdown..."
        │
        ▼
    shutdown(shutdown_timeout)
        ├── stop accepting (listener closed)
        ├── close idle keep-alive connections
        └── poll every 1ms, 2ms, 4ms ... 500ms until none active
                │                                 │
           all drained                   deadline passed
                │                                 │
                │                     ShutdownTimeoutError
                │                     "Could not gracefully shutdown ..."
                │                     close(): force-close everything
                ▼                                 │
    "Server stopped successfully"  ◄──────────────┘

A fatal listener outcome (bind failure, invalid port, accept error) skips
the drain: it is logged and raised as ListenerError.

=============================================================================
"""

import logging
import queue
import signal
import threading
import time
from enum import Enum
from typing import Dict, Optional, Union

from .config import ServerConfig, load_config
from .context import ServerContext
from .core.connection import Connection
from .core.listener import Listener, ListenerError, ListenerOutcome
from .http.request import HTTPParseError, RequestParser
from .http.response import error_response
from .http.router import Router
from .http.status_codes import HTTPStatus
from .routes import build_router
from .timeutil import seconds_to_duration


logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)s] %(filename)s:%(lineno)d: %(message)s"
LOG_DATE_FORMAT = "%Y/%m/%d %H:%M:%S"

SHUTDOWN_POLL_MIN = 0.001
SHUTDOWN_POLL_MAX = 0.5


class ServerState(Enum):
    NEW = "new"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class ShutdownTimeoutError(TimeoutError):
    """Connections were still active when the shutdown deadline passed."""


class HTTPServer:
    """
    Status server.

    =========================================================================
    USAGE
    =========================================================================

        # Process entry point: blocks until SIGINT/SIGTERM
        HTTPServer(load_config()).run()

        # Embedded / tests
        server = HTTPServer(ServerConfig(port="0"))
        server.start()
        server.wait_until_listening()
        host, port = server.address
        ...
        server.shutdown(timeout=5)

    =========================================================================

    Args:
        config: Server configuration (default: from the environment).
        router: Request router (default: the service routes).
        context: Shared server context (default: a fresh one for config).
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        router: Optional[Router] = None,
        context: Optional[ServerContext] = None,
    ):
        self.config = config or load_config()
        self.context = context or ServerContext.create(self.config)
        self.router = router or build_router(self.context)

        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._listener = Listener(self.config)
        self._listener_thread: Optional[threading.Thread] = None

        # The listener reports exactly once; a second slot is never needed.
        self._outcomes: "queue.Queue[ListenerOutcome]" = queue.Queue(maxsize=1)

        self._connections: set = set()
        self._connections_lock = threading.Lock()
        self._shutting_down = threading.Event()

        self._state = ServerState.NEW
        self._state_lock = threading.Lock()

        # Written by signal handlers and request_shutdown(), read by run().
        self._received_signal: Optional[signal.Signals] = None
        self._shutdown_reason: Optional[str] = None
        self._original_handlers: Dict[int, object] = {}

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def address(self) -> Optional[tuple[str, int]]:
        """The bound (host, port) while listening, else None."""
        return self._listener.address

    @property
    def active_connections(self) -> int:
        with self._connections_lock:
            return len(self._connections)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self):
        """
        Start the listener on a background thread and return immediately.

        Raises:
            RuntimeError: If the server was already started.
        """
        with self._state_lock:
            if self._state is not ServerState.NEW:
                raise RuntimeError(f"server cannot start from state {self._state.value}")
            self._state = ServerState.RUNNING

        self._listener_thread = threading.Thread(
            target=self._serve,
            name="statusserver-listener",
            daemon=True,
        )
        self._listener_thread.start()

    def _serve(self):
        outcome = self._listener.serve(self._handle_connection)
        self._outcomes.put_nowait(outcome)

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the listener is accepting connections.

        Returns:
            True once listening; False on timeout or if the listener
            finished without ever listening (e.g. bind failure).
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while not self._listener.listening.wait(0.05):
            if self._listener.finished.is_set():
                return self._listener.listening.is_set()
            if deadline is not None and time.monotonic() >= deadline:
                return False
        return True

    def run(self):
        """
        Serve until a shutdown signal arrives or the listener stops.

        This is the process entry point: it configures logging, installs
        SIGINT/SIGTERM handlers (main thread only) and blocks.

        Raises:
            ListenerError: The listener failed. No graceful drain is
                attempted.
        """
        self._setup_logging()

        logger.info("Starting web server on http://localhost:%s ...", self.config.port)
        logger.info(
            "Server configuration - ReadTimeout: %s | WriteTimeout: %s | IdleTimeout: %s",
            seconds_to_duration(self.config.read_timeout),
            seconds_to_duration(self.config.write_timeout),
            seconds_to_duration(self.config.idle_timeout),
        )

        self._setup_signals()
        try:
            if self._state is ServerState.NEW:
                self.start()

            trigger = self._wait_for_trigger()

            if isinstance(trigger, ListenerOutcome):
                if trigger.fatal:
                    logger.critical("Server failed to start: %s", trigger.error)
                    self.close()
                    raise trigger.error
                logger.info("Listener closed")
                return

            logger.info("Received shutdown signal: %s", trigger)
            logger.info("Attempting graceful shutdown...")

            try:
                self.shutdown(self.config.shutdown_timeout)
            except ShutdownTimeoutError as e:
                logger.warning("Could not gracefully shutdown the server: %s", e)
                self.close()

            logger.info("Server stopped successfully")
        finally:
            self._restore_signals()

    def _wait_for_trigger(self) -> Union[ListenerOutcome, str]:
        """
        Whichever comes first: a shutdown request (returned as its name)
        or the listener's outcome.
        """
        while True:
            if self._received_signal is not None:
                return self._received_signal.name
            if self._shutdown_reason is not None:
                return self._shutdown_reason
            try:
                return self._outcomes.get(timeout=0.1)
            except queue.Empty:
                continue

    def request_shutdown(self, reason: str = "shutdown requested"):
        """Ask a running run() to shut down, as SIGTERM would."""
        self._shutdown_reason = reason

    def shutdown(self, timeout: Optional[float] = None):
        """
        Graceful shutdown.

        Stops accepting, then closes idle connections and polls with
        exponential backoff until no connection is active.

        Raises:
            ShutdownTimeoutError: Connections were still active after
                ``timeout`` seconds (default: config.shutdown_timeout).
                The server is left in SHUTTING_DOWN; call close().
        """
        if timeout is None:
            timeout = self.config.shutdown_timeout
        deadline = time.monotonic() + timeout

        with self._state_lock:
            if self._state is ServerState.STOPPED:
                return
            self._state = ServerState.SHUTTING_DOWN

        self._shutting_down.set()
        self._listener.close()

        interval = SHUTDOWN_POLL_MIN
        while True:
            self._close_idle_connections()
            active = self.active_connections
            if not active:
                break

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ShutdownTimeoutError(
                    f"{active} connection(s) still active after {seconds_to_duration(timeout)}"
                )
            time.sleep(min(interval, remaining))
            interval = min(interval * 2, SHUTDOWN_POLL_MAX)

        self._join_listener(deadline)
        self._set_state(ServerState.STOPPED)
        logger.debug("Graceful shutdown complete")

    def close(self):
        """Stop immediately: close the listener and abort every connection."""
        with self._state_lock:
            if self._state is ServerState.STOPPED:
                return
            self._state = ServerState.SHUTTING_DOWN

        self._shutting_down.set()
        self._listener.close()

        with self._connections_lock:
            connections = list(self._connections)
        for conn in connections:
            logger.debug("[%s] Force-closing connection (%s)", conn.id, conn.state.value)
            conn.force_close()

        self._set_state(ServerState.STOPPED)

    def _close_idle_connections(self):
        with self._connections_lock:
            connections = list(self._connections)
        for conn in connections:
            if conn.close_if_idle():
                logger.debug("[%s] Closed idle connection", conn.id)

    def _join_listener(self, deadline: float):
        thread = self._listener_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(max(0.0, deadline - time.monotonic()))

    def _set_state(self, state: ServerState):
        with self._state_lock:
            self._state = state

    # =========================================================================
    # LOGGING AND SIGNALS
    # =========================================================================

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format=LOG_FORMAT,
            datefmt=LOG_DATE_FORMAT,
        )
        logging.getLogger("statusserver").setLevel(level)

    def _setup_signals(self):
        """
        Install SIGINT/SIGTERM handlers.

        Signals can only be handled on the main thread, so an HTTPServer
        run from another thread relies on request_shutdown() instead.
        The handler only records the signal; run() does the work.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            self._received_signal = signal.Signals(signum)

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Called on the listener thread for each accepted connection."""
        if self._shutting_down.is_set():
            conn.force_close()
            return

        with self._connections_lock:
            self._connections.add(conn)

        thread = threading.Thread(
            target=self._process_connection,
            args=(conn,),
            name=f"statusserver-conn-{conn.id}",
            daemon=True,
        )
        thread.start()

    def _process_connection(self, conn: Connection):
        """
        HTTP keep-alive loop for one connection (runs on its own thread).

            1. Read request      None → close quietly
            2. Parse             HTTPParseError → error JSON, close
            3. Router            exception → 500 JSON
            4. Write response    HEAD → headers only
            5. Keep-alive?       not during shutdown
        """
        try:
            with conn:
                while True:
                    try:
                        raw_request = conn.read_request()
                    except TimeoutError:
                        self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                        break
                    except HTTPParseError as e:
                        self._send_error(conn, e.status_code, str(e))
                        break

                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        logger.debug("[%s] Parse error: %s", conn.id, e)
                        self._send_error(conn, e.status_code, str(e))
                        break

                    try:
                        response = self.router.handle(request)
                    except Exception:
                        logger.exception(
                            "[%s] Handler error: %s %s", conn.id, request.method, request.path
                        )
                        response = error_response(HTTPStatus.INTERNAL_SERVER_ERROR)

                    keep_alive = request.is_keep_alive and not self._shutting_down.is_set()
                    if keep_alive:
                        response.headers.setdefault("Connection", "keep-alive")
                    else:
                        response.headers["Connection"] = "close"

                    response_bytes = response.to_bytes(
                        self.config.server_name,
                        include_body=request.method != "HEAD",
                    )
                    if not conn.send_response(response_bytes):
                        break

                    if not keep_alive or self._shutting_down.is_set():
                        break
                    if not conn.set_idle():
                        break
        except Exception:
            logger.exception("[%s] Connection error", conn.id)
        finally:
            with self._connections_lock:
                self._connections.discard(conn)

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """Error JSON for failures before a request reaches the router."""
        response = error_response(status, message)
        response.headers["Connection"] = "close"
        conn.send_response(response.to_bytes(self.config.server_name))


def serve(config: Optional[ServerConfig] = None):
    """Build a server for ``config`` and run it until shutdown."""
    HTTPServer(config).run()


__all__ = [
    "HTTPServer",
    "ListenerError",
    "ServerState",
    "ShutdownTimeoutError",
    "serve",
]
