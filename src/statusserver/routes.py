"""
=============================================================================
ROUTE TABLE
=============================================================================

Wires the handlers into a Router, each wrapped by the same middleware
pipeline:

    ┌────────────┬──────────────────────────────────────────────────────┐
    │  Path      │  Chain                                               │
    ├────────────┼──────────────────────────────────────────────────────┤
    │  /         │  CORS → Logging → StatusHandler                      │
    │  /health   │  CORS → Logging → HealthHandler                      │
    │  /healthz  │  CORS → Logging → HealthHandler                      │
    │  (default) │  CORS → Logging → not_found_handler                  │
    └────────────┴──────────────────────────────────────────────────────┘

Because the fallback is wrapped too, every request that passes the CORS
stage gets a request identifier and two access log lines, including 404s.

=============================================================================
"""

from .context import ServerContext
from .handlers import HealthHandler, StatusHandler, not_found_handler
from .http.router import Router
from .middleware import CORSMiddleware, LoggingMiddleware, MiddlewarePipeline


STATUS_PATH = "/"
HEALTH_PATHS = ("/health", "/healthz")


def build_pipeline(context: ServerContext) -> MiddlewarePipeline:
    """CORS outermost, logging next, then the handler."""
    return MiddlewarePipeline().use(
        CORSMiddleware(),
        LoggingMiddleware(context.counter),
    )


def build_router(context: ServerContext) -> Router:
    """The service's route table, bound to ``context``."""
    pipeline = build_pipeline(context)
    router = Router()

    router.add_route(STATUS_PATH, pipeline.wrap(StatusHandler(context.config.port)), name="status")

    health = pipeline.wrap(HealthHandler(context))
    for path in HEALTH_PATHS:
        router.add_route(path, health, name="health")

    router.set_default(pipeline.wrap(not_found_handler))
    return router
