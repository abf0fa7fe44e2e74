"""
Route handlers.

    StatusHandler       GET /
    HealthHandler       GET /health, /healthz
    not_found_handler   router default (404)
"""

from .health import HealthHandler
from .status import StatusHandler, not_found_handler

__all__ = [
    "HealthHandler",
    "StatusHandler",
    "not_found_handler",
]
