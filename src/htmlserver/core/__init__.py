"""
Networking core: the TCP listener, per-connection I/O and the worker pool.

    SocketServer   accept loop, keep-alive request loop, shutdown()/close()
    Connection     one client socket, buffered reads, graceful/forced close
    ThreadPool     workers that run connections
"""

from .socket_server import SocketServer, ShutdownTimeoutError, ForceCloseError
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "ShutdownTimeoutError",
    "ForceCloseError",
    "Connection",
    "ConnectionState",
    "ThreadPool",
]
