"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with buffered request reading, bounded
writes and a small state machine that graceful shutdown inspects.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

recv() returns whatever the kernel has: half a request line, or the tail
of one request plus the head of the next (pipelining). Connection keeps
a buffer across reads and hands out exactly one request at a time:

    headers end at \\r\\n\\r\\n, the body is Content-Length bytes after it,
    anything beyond stays buffered for the next read_request().

=============================================================================
TIMEOUTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept            first request     response     next request     │
    │     │◄── read_timeout ──►│◄─ handler ─►│◄─ idle ─►│◄─ read ─►│  ... │
    │     │   (whole request)  │             │ timeout  │ timeout  │      │
    │                                         write_timeout per write     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    NEW connection, nothing received within read_timeout  → closed silently
    part of a request, not complete within read_timeout   → TimeoutError (408)
    keep-alive, no new request within idle_timeout         → closed silently

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► PROCESSING ──────► WRITING ──────► IDLE
     │             │                                   │             │
     │             │                                   │   (next     │
     │             │                                   │   request)  │
     │             ▼                                   ▼             ▼
     └─────────► CLOSING ◄──────────────────────────────────── READING
                    │
                    ▼
                  CLOSED

NEW and IDLE are the "idle" states: no request is in progress, so graceful
shutdown may close the connection without losing work (close_if_idle()).
State changes are made under a per-connection lock because the shutdown
thread and the connection thread both drive them.

=============================================================================
"""

import socket
import threading
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional

from ..http.request import HTTPParseError
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states."""
    NEW = "new"                # Accepted, no bytes received yet
    READING = "reading"        # Receiving a request
    PROCESSING = "processing"  # Request parsed, handler running
    WRITING = "writing"        # Sending the response
    IDLE = "idle"              # Keep-alive, waiting for the next request
    CLOSING = "closing"        # Close in progress
    CLOSED = "closed"          # Socket released


IDLE_STATES = frozenset({ConnectionState.NEW, ConnectionState.IDLE})


@dataclass(eq=False)
class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short connection identifier for debug logs.
        state: Current ConnectionState.
        requests_handled: Number of requests read on this connection.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    requests_handled: int = 0

    buffer_size: int = 8192
    read_timeout: float = 15.0
    write_timeout: float = 15.0
    idle_timeout: float = 60.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def from_config(cls, sock: socket.socket, address, config) -> "Connection":
        """Wrap an accepted socket using the timeouts and limits of ``config``."""
        return cls(
            socket=sock,
            address=(address[0], address[1]),
            buffer_size=config.buffer_size,
            read_timeout=config.read_timeout,
            write_timeout=config.write_timeout,
            idle_timeout=config.idle_timeout,
            max_request_size=config.max_request_size,
        )

    @property
    def is_idle(self) -> bool:
        return self.state in IDLE_STATES

    @property
    def is_closed(self) -> bool:
        return self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED)

    # ─────────────────────────────────────────────────────────────────────
    # READING
    # ─────────────────────────────────────────────────────────────────────

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request.

        Returns:
            The request bytes, or None when the connection should simply be
            closed: the client went away, the connection sat idle past its
            timeout, or it was closed by graceful shutdown.

        Raises:
            TimeoutError: A request started arriving but was not complete
                within read_timeout.
            HTTPParseError: The request exceeds max_request_size (413).
        """
        if not self._buffer:
            if not self._wait_for_request():
                return None

        with self._lock:
            if self.is_closed:
                return None
            self.state = ConnectionState.READING

        deadline = time.monotonic() + self.read_timeout

        while b"\r\n\r\n" not in self._buffer:
            self._check_size()
            chunk = self._recv_before(deadline)
            if not chunk:
                return None
            self._buffer += chunk

        header_end = self._buffer.find(b"\r\n\r\n")
        body_start = header_end + 4
        content_length = self._parse_content_length(self._buffer[:header_end])
        if body_start + content_length > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {body_start + content_length} bytes",
                status_code=HTTPStatus.PAYLOAD_TOO_LARGE,
            )

        while len(self._buffer) - body_start < content_length:
            chunk = self._recv_before(deadline)
            if not chunk:
                return None
            self._buffer += chunk

        request_end = body_start + content_length
        request_data = self._buffer[:request_end]
        self._buffer = self._buffer[request_end:]

        with self._lock:
            if self.is_closed:
                return None
            self.state = ConnectionState.PROCESSING
        self.requests_handled += 1

        return request_data

    def _wait_for_request(self) -> bool:
        """
        Block until the first byte of the next request arrives.

        Fresh connections wait up to read_timeout, keep-alive connections
        up to idle_timeout. Returns False if nothing arrives.
        """
        timeout = self.read_timeout if self.requests_handled == 0 else self.idle_timeout

        try:
            self.socket.settimeout(timeout)
            chunk = self.socket.recv(self.buffer_size)
        except socket.timeout:
            logger.debug("[%s] Idle timeout after %d requests", self.id, self.requests_handled)
            return False
        except OSError:
            return False

        if not chunk:
            return False

        self._buffer += chunk
        return True

    def _recv_before(self, deadline: float) -> bytes:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TimeoutError("Request read timeout")

        try:
            self.socket.settimeout(remaining)
            return self.socket.recv(self.buffer_size)
        except socket.timeout:
            raise TimeoutError("Request read timeout")
        except OSError:
            # Reset by the peer, or closed under us by force_close().
            return b""

    def _check_size(self):
        if len(self._buffer) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(self._buffer)} bytes",
                status_code=HTTPStatus.PAYLOAD_TOO_LARGE,
            )

    def _parse_content_length(self, headers: bytes) -> int:
        """
        Content-Length from raw header bytes, 0 when missing or invalid.

        The parser validates the header properly; this only needs to know
        how many body bytes to wait for.
        """
        for line in headers.decode("latin-1").lower().split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(0, int(line.split(":", 1)[1].strip()))
                except ValueError:
                    return 0
        return 0

    # ─────────────────────────────────────────────────────────────────────
    # WRITING
    # ─────────────────────────────────────────────────────────────────────

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes, bounded by write_timeout.

        Returns:
            True if everything was sent, False if the connection is gone.
        """
        with self._lock:
            if self.is_closed:
                return False
            self.state = ConnectionState.WRITING

        try:
            self.socket.settimeout(self.write_timeout)
            self.socket.sendall(data)
            return True
        except socket.timeout:
            logger.warning("[%s] Write timeout after %ss", self.id, self.write_timeout)
            return False
        except OSError as e:
            logger.debug("[%s] Send failed: %s", self.id, e)
            return False

    def set_idle(self) -> bool:
        """
        Mark the connection as waiting for its next request.

        Returns False if it was closed in the meantime.
        """
        with self._lock:
            if self.is_closed:
                return False
            self.state = ConnectionState.IDLE
            return True

    # ─────────────────────────────────────────────────────────────────────
    # CLOSING
    # ─────────────────────────────────────────────────────────────────────

    def close_if_idle(self) -> bool:
        """
        Close the connection if no request is in progress.

        Called by graceful shutdown. Shutting the socket down wakes the
        connection thread blocked in recv(), which then sees the CLOSING
        state and finishes.

        Returns:
            True if the connection was idle and has been closed.
        """
        with self._lock:
            if self.state not in IDLE_STATES:
                return False
            self.state = ConnectionState.CLOSING

        self._shutdown_socket(socket.SHUT_RDWR)
        return True

    def force_close(self):
        """Abort the connection regardless of state, dropping any in-flight request."""
        with self._lock:
            if self.state == ConnectionState.CLOSED:
                return
            self.state = ConnectionState.CLOSING

        self._shutdown_socket(socket.SHUT_RDWR)
        try:
            self.socket.close()
        except OSError:
            pass

    def close(self):
        """
        Close the connection gracefully.

            1. shutdown(SHUT_WR)   send FIN, the client sees end of response
            2. drain               discard anything the client still sends
            3. close()             release the file descriptor
        """
        with self._lock:
            if self.state == ConnectionState.CLOSED:
                return
            self.state = ConnectionState.CLOSING

        self._shutdown_socket(socket.SHUT_WR)

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        with self._lock:
            self.state = ConnectionState.CLOSED
        logger.debug("[%s] Connection closed after %d requests", self.id, self.requests_handled)

    def _shutdown_socket(self, how: int):
        try:
            self.socket.shutdown(how)
        except OSError:
            pass  # Already disconnected

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
