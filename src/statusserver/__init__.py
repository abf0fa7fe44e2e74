"""
=============================================================================
STATUSSERVER - Minimal HTTP/1.1 Status and Health Service
=============================================================================

A small service answering "is this port up?" and "is this process
healthy?", with request identifiers, access logging, CORS headers and a
bounded graceful shutdown on SIGINT/SIGTERM.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    statusserver/
    ├── __init__.py          # Package exports
    ├── __main__.py          # CLI entry point (python -m statusserver)
    ├── server.py            # HTTPServer lifecycle manager
    ├── config.py            # ServerConfig dataclass
    ├── context.py           # RequestCounter + ServerContext
    ├── routes.py            # Route table wiring
    ├── timeutil.py          # RFC 3339 timestamps, duration strings
    ├── core/
    │   ├── listener.py      # bind/listen/accept
    │   └── connection.py    # Per-client socket wrapper
    ├── http/
    │   ├── request.py       # Request parsing
    │   ├── response.py      # Response building
    │   ├── router.py        # Exact-path routing
    │   └── status_codes.py  # HTTP status codes
    ├── middleware/
    │   ├── base.py          # Middleware ABC + pipeline
    │   ├── logging.py       # Request id + access log
    │   └── cors.py          # CORS headers / preflight
    └── handlers/
        ├── status.py        # GET / and the 404 fallback
        └── health.py        # GET /health, /healthz

=============================================================================
QUICK START
=============================================================================

    $ PORT=8080 python -m statusserver
    $ curl -s localhost:8080/healthz
    {"status":"healthy","uptime":"2.5s","uptime_ms":2500,...}

    # Embedded
    from statusserver import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(port="8080"))
    server.run()          # blocks until SIGINT/SIGTERM

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig, load_config
from .context import RequestCounter, ServerContext
from .core.listener import ListenerError
from .server import HTTPServer, ServerState, ShutdownTimeoutError

__all__ = [
    "HTTPServer",
    "ListenerError",
    "RequestCounter",
    "ServerConfig",
    "ServerContext",
    "ServerState",
    "ShutdownTimeoutError",
    "load_config",
    "__version__",
]
