"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the HTML server.

The configuration is a frozen dataclass: it is built once by the process
bootstrap and never mutated afterwards. The lifecycle manager, the socket
server and every connection read from the same immutable record.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Environment variables                                          │
    │      └── HTML_BIND_ADDRESS=0.0.0.0:8080 python -m htmlserver       │
    │                                                                      │
    │   2. Default values (in this dataclass)                            │
    │      └── localhost:8000, 5s read/write timeouts, 1 MiB headers     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
TIMEOUT SEMANTICS
=============================================================================

    read_timeout   How long a client may take to send one request.
    write_timeout  How long we may block sending one response.
    idle_timeout   How long a keep-alive connection may sit idle.

A value of 0 disables that timeout (the socket blocks). Negative values
are rejected by validate().

=============================================================================
"""

import os
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Tuple


# host:port, where host may be empty ("all interfaces") or a bracketed IPv6
# literal. Anything fancier is rejected at validate() time.
BIND_ADDRESS_PATTERN = re.compile(r"^(?P<host>\[[0-9a-fA-F:.]+\]|[^:\s]*):(?P<port>\d+)$")

DEFAULT_STATIC_DIR = str(Path(__file__).parent / "static")


def parse_bind_address(address: str) -> Tuple[str, int]:
    """
    Split a "host:port" bind address into its parts.

    An empty host means "all interfaces" and becomes 0.0.0.0.

    Args:
        address: Bind address such as "localhost:8000" or ":8080".

    Returns:
        (host, port) tuple ready for socket.bind().

    Raises:
        ValueError: If the address is not host:port or the port is out of range.

    Example:
        >>> parse_bind_address("127.0.0.1:0")
        ('127.0.0.1', 0)
    """
    match = BIND_ADDRESS_PATTERN.match(address or "")
    if not match:
        raise ValueError(f"Invalid bind address: {address!r}. Expected host:port.")

    host = match.group("host").strip("[]") or "0.0.0.0"
    port = int(match.group("port"))

    if not 0 <= port < 65536:
        raise ValueError(f"Invalid port: {port}. Must be 0-65535.")

    return host, port


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the HTML server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    LISTENER
    - bind_address, backlog, buffer_size

    TIMEOUTS AND LIMITS
    - read_timeout, write_timeout, idle_timeout, max_header_bytes

    THREADING
    - min_workers, max_workers

    STATIC FILES
    - static_dir, static_url_prefix

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # LISTENER
    # ─────────────────────────────────────────────────────────────────────

    bind_address: str = "localhost:8000"
    """
    Address to listen on, as host:port.
    - "localhost:8000" - Local development (default)
    - "127.0.0.1:0"    - Ephemeral port, handy for tests
    - ":8000"          - All interfaces
    """

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 8192
    """Bytes read from a client socket per recv() call."""

    # ─────────────────────────────────────────────────────────────────────
    # TIMEOUTS AND LIMITS
    # ─────────────────────────────────────────────────────────────────────

    read_timeout: float = 5.0
    """Seconds allowed for reading one full request. 0 = no timeout."""

    write_timeout: float = 5.0
    """Seconds allowed for writing one full response. 0 = no timeout."""

    idle_timeout: float = 5.0
    """Seconds a keep-alive connection may wait for its next request."""

    max_header_bytes: int = 1 << 20
    """
    Maximum size of the request line plus headers (1 MiB).
    Larger requests are answered with 431 Request Header Fields Too Large.
    """

    max_request_size: int = 10 * 1024 * 1024
    """Maximum size of a whole request, headers and body (10 MB)."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    # ─────────────────────────────────────────────────────────────────────
    # STATIC FILES
    # ─────────────────────────────────────────────────────────────────────

    static_dir: Optional[str] = DEFAULT_STATIC_DIR
    """Directory served under static_url_prefix. None disables static files."""

    static_url_prefix: str = "/static"

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING & IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    server_name: str = "htmlserver/1.0"

    @property
    def host(self) -> str:
        """Host part of bind_address (0.0.0.0 when empty)."""
        return parse_bind_address(self.bind_address)[0]

    @property
    def port(self) -> int:
        """Port part of bind_address (0 means "pick a free port")."""
        return parse_bind_address(self.bind_address)[1]

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTML_BIND_ADDRESS   host:port (default: localhost:8000)
        HTML_READ_TIMEOUT   Read timeout in seconds (default: 5)
        HTML_WRITE_TIMEOUT  Write timeout in seconds (default: 5)
        HTML_STATIC_DIR     Static files directory (default: bundled assets)
        HTML_LOG_LEVEL      Logging level (default: INFO)

        Unset variables fall back to the compiled-in defaults.

        =====================================================================
        """
        defaults = cls()
        return cls(
            bind_address=os.getenv("HTML_BIND_ADDRESS", defaults.bind_address),
            read_timeout=float(os.getenv("HTML_READ_TIMEOUT", defaults.read_timeout)),
            write_timeout=float(os.getenv("HTML_WRITE_TIMEOUT", defaults.write_timeout)),
            static_dir=os.getenv("HTML_STATIC_DIR", defaults.static_dir),
            log_level=os.getenv("HTML_LOG_LEVEL", defaults.log_level),
        )

    def with_overrides(self, **changes) -> "ServerConfig":
        """Return a copy with some fields replaced (the original is frozen)."""
        return replace(self, **changes)

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by ServerHandle.start() before anything is bound, so a bad
        config fails loudly in the caller instead of silently in the
        background accept thread.

        Raises:
            ValueError: On the first invalid value found.
        """
        parse_bind_address(self.bind_address)

        for name in ("read_timeout", "write_timeout", "idle_timeout"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")

        if self.max_header_bytes < 1:
            raise ValueError("max_header_bytes must be >= 1")

        if self.max_request_size < self.max_header_bytes:
            raise ValueError("max_request_size must be >= max_header_bytes")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")


def as_socket_timeout(seconds: float) -> Optional[float]:
    """Translate a config timeout into a socket timeout (0 -> blocking)."""
    return seconds if seconds > 0 else None
