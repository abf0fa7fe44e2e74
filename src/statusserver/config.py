"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized, immutable configuration for the status server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m statusserver --port 3000                        │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── PORT=3000 python -m statusserver                          │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
TIMEOUTS
=============================================================================

    read_timeout      How long a client has to deliver a complete request
    write_timeout     How long a single response write may take
    idle_timeout      How long a keep-alive connection may sit between
                      requests before we close it
    shutdown_timeout  How long graceful shutdown waits for in-flight
                      requests before connections are force-closed

The four timeouts are fixed constants; only the port (and a handful of
operational knobs) come from the environment.

=============================================================================
"""

import os
from dataclasses import dataclass, replace as _replace


DEFAULT_PORT = "10001"


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the status server.

    The instance is frozen: it is created once at startup and shared
    read-only by the listener, every connection thread and the handlers.
    Use ``replace()`` to derive a modified copy.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, max_request_size

    TIMEOUTS (seconds)
    - read_timeout, write_timeout, idle_timeout, shutdown_timeout

    LOGGING / IDENTITY
    - log_level, server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    port: str = DEFAULT_PORT
    """
    The port to listen on, kept as the raw string from the environment.
    It is converted when the listener binds; a value that is not a port
    number is reported as a listener startup failure.
    """

    host: str = "0.0.0.0"
    """
    The IP address to bind to. All interfaces by default.
    """

    backlog: int = 128
    """
    Maximum number of queued connections waiting for accept().
    """

    buffer_size: int = 8192
    """
    Size of each recv() call in bytes.
    """

    max_request_size: int = 1024 * 1024  # 1 MB
    """
    Maximum size of a request (headers + body). Larger requests are
    rejected with 413.
    """

    # ─────────────────────────────────────────────────────────────────────
    # TIMEOUTS
    # ─────────────────────────────────────────────────────────────────────

    read_timeout: float = 15.0
    write_timeout: float = 15.0
    idle_timeout: float = 60.0
    shutdown_timeout: float = 30.0

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    server_name: str = "statusserver/1.0"
    """
    Value of the Server response header.
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        PORT        Listen port (default: 10001, also when set but empty)
        LOG_LEVEL   Logging level (default: INFO)

        =====================================================================

        Never fails: the port is not validated here.
        """
        return cls(
            port=os.getenv("PORT") or DEFAULT_PORT,
            log_level=os.getenv("LOG_LEVEL") or "INFO",
        )

    def replace(self, **changes) -> "ServerConfig":
        """Return a copy with the given fields changed."""
        return _replace(self, **changes)


def load_config() -> ServerConfig:
    """Load the process configuration from the environment."""
    return ServerConfig.from_env()
