"""
=============================================================================
CORE NETWORKING
=============================================================================

The transport layer under the HTTP model.

    listener.py     bind/listen/accept, reports a ListenerOutcome
    connection.py   one client socket: buffered reads, timeouts, state

=============================================================================
"""

from .connection import Connection, ConnectionState
from .listener import Listener, ListenerError, ListenerOutcome

__all__ = [
    "Connection",
    "ConnectionState",
    "Listener",
    "ListenerError",
    "ListenerOutcome",
]
