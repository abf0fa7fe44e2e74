"""
=============================================================================
SERVER CONTEXT
=============================================================================

Process-lifetime state that the request pipeline shares, gathered into one
explicitly owned value instead of module globals.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         ServerContext                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   config          ServerConfig (frozen)          read-only          │
    │   counter         RequestCounter                 fetch-and-add      │
    │   started_at_ns   monotonic clock at startup     read-only          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The context is built once by HTTPServer (or by build_router() in tests)
and handed to the middleware and handlers that need it.

=============================================================================
REQUEST IDENTIFIERS
=============================================================================

Every request that reaches the logging stage takes exactly one number from
the counter. Numbers are issued in increment order, so for N concurrent
requests the issued set is {k, k+1, ..., k+N-1} with no duplicates.

The counter behaves like an unsigned 64-bit integer: it wraps to 0 after
2**64 - 1.

=============================================================================
"""

import threading
import time
from dataclasses import dataclass, field

from .config import ServerConfig


UINT64_MASK = (1 << 64) - 1


class RequestCounter:
    """
    Monotonic request identifier generator.

    ``next()`` is a fetch-and-add: it increments the counter and returns the
    new value, atomically with respect to other threads. The first
    identifier issued by a fresh counter is 1.
    """

    def __init__(self, start: int = 0):
        self._value = start & UINT64_MASK
        self._lock = threading.Lock()

    def next(self) -> int:
        """Increment and return the new identifier."""
        with self._lock:
            self._value = (self._value + 1) & UINT64_MASK
            return self._value

    @property
    def value(self) -> int:
        """The last identifier issued (0 if none)."""
        return self._value


@dataclass(frozen=True)
class ServerContext:
    """Configuration, counter and start time shared by the request pipeline."""

    config: ServerConfig
    counter: RequestCounter = field(default_factory=RequestCounter)
    started_at_ns: int = field(default_factory=time.monotonic_ns)

    @classmethod
    def create(cls, config: ServerConfig) -> "ServerContext":
        return cls(config=config)

    @property
    def uptime_ns(self) -> int:
        """Nanoseconds since the context was created. Never negative."""
        return max(0, time.monotonic_ns() - self.started_at_ns)
