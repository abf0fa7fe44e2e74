"""
=============================================================================
MIDDLEWARE
=============================================================================

Request/response processing layers applied around every route.

    CORSMiddleware      CORS headers, preflight short-circuit (outermost)
    LoggingMiddleware   request identifier + access log lines

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .cors import CORSConfig, CORSMiddleware
from .logging import LoggingMiddleware

__all__ = [
    # Base classes
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",

    # Built-in middleware
    "CORSConfig",
    "CORSMiddleware",
    "LoggingMiddleware",
]
