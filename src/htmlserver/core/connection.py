"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with a higher-level API for reading HTTP
requests and writing HTTP responses.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

TCP only guarantees that bytes arrive in order and intact. A single recv()
may return half a request line or two pipelined requests at once, so we
buffer until the \r\n\r\n header terminator shows up and then read exactly
Content-Length more bytes.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► PROCESSING ──────► WRITING ────────┐
     │             │                                    │           │
     │             │                                    │           ▼
     │             │                                    │      KEEP_ALIVE
     │             ▼                                    │           │
     └──────────► CLOSING ◄─────────────────────────────┴───────────┘
                    │
                    ▼
                  CLOSED

KEEP_ALIVE is the only *idle* state: the previous response was delivered
and nothing of the next request has arrived yet. Graceful shutdown may
interrupt idle connections right away; every other state is in-flight work
that shutdown has to wait for.

=============================================================================
TWO WAYS TO CLOSE
=============================================================================

    close()   Graceful. FIN to the client, drain what they sent, release
              the descriptor. Used by the worker once it is done.

    abort()   Forced. SO_LINGER(on, 0) makes close() send RST instead of
              FIN, so the client sees "connection reset" and any unsent
              response data is discarded. Used by forced server shutdown.

=============================================================================
"""

import socket
import struct
import logging
import threading
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

from ..config import as_socket_timeout
from ..http.request import HTTPParseError
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states."""
    NEW = "new"                # Just accepted, nothing read yet
    READING = "reading"        # Receiving request bytes
    PROCESSING = "processing"  # Handler is running
    WRITING = "writing"        # Sending response bytes
    KEEP_ALIVE = "keep_alive"  # Response sent, waiting for next request
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short connection identifier used in log lines.
        state: Current connection state.
        requests_handled: Number of requests read on this connection.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    requests_handled: int = 0

    # Limits and timeouts (copied from ServerConfig by the socket server)
    buffer_size: int = 8192
    read_timeout: float = 5.0
    write_timeout: float = 5.0
    idle_timeout: float = 5.0
    max_header_bytes: int = 1 << 20
    max_request_size: int = 10 * 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)
    _close_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        self.socket.settimeout(as_socket_timeout(self.read_timeout))

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def is_idle(self) -> bool:
        """True while waiting for the next keep-alive request."""
        return self.state == ConnectionState.KEEP_ALIVE and not self._buffer

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request from the socket.

        ┌─────────────────────────────────────────────────────────────────┐
        │                    read_request() Flow                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   1. Wait for the first byte (idle_timeout on keep-alive)       │
        │   2. Switch to read_timeout, recv until \r\n\r\n                │
        │      └── more than max_header_bytes without it → 431            │
        │   3. Parse Content-Length, recv the rest of the body            │
        │   4. Slice one request off the buffer, keep the remainder       │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        Returns:
            Complete request bytes, or None if the peer closed the
            connection (or an idle keep-alive connection timed out).

        Raises:
            TimeoutError: If the client stalls in the middle of a request.
            HTTPParseError: If headers or body exceed the configured limits.
        """
        if self.requests_handled > 0 and not self._buffer:
            self.socket.settimeout(as_socket_timeout(self.idle_timeout))

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None

                if self.state != ConnectionState.READING:
                    self.state = ConnectionState.READING
                    self.socket.settimeout(as_socket_timeout(self.read_timeout))

                self._buffer += chunk

                if b"\r\n\r\n" not in self._buffer and len(self._buffer) > self.max_header_bytes:
                    raise HTTPParseError(
                        f"Request headers exceed {self.max_header_bytes} bytes",
                        status_code=HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE,
                    )

            self.state = ConnectionState.READING

            header_end = self._buffer.find(b"\r\n\r\n")
            if header_end > self.max_header_bytes:
                raise HTTPParseError(
                    f"Request headers exceed {self.max_header_bytes} bytes",
                    status_code=HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE,
                )

            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            if body_start + content_length > self.max_request_size:
                raise HTTPParseError(
                    f"Request too large: {body_start + content_length} bytes",
                    status_code=HTTPStatus.PAYLOAD_TOO_LARGE,
                )

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break  # Peer closed mid-body; the parser reports it
                self._buffer += chunk

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            return request_data

        except socket.timeout:
            if self.state != ConnectionState.READING:
                logger.debug(f"[{self.id}] Idle timeout")
                return None
            raise TimeoutError("Request read timeout")

    def _recv(self) -> bytes:
        try:
            data = self.socket.recv(self.buffer_size)
            return data
        except (ConnectionResetError, BrokenPipeError):
            return b""
        except OSError:
            # Descriptor closed underneath us by a forced shutdown
            if self.is_closed:
                return b""
            raise

    def _parse_content_length(self, headers: bytes) -> int:
        """Find Content-Length in raw header bytes (0 if absent/invalid)."""
        try:
            header_str = headers.decode("latin-1").lower()
            for line in header_str.split("\r\n"):
                if line.startswith("content-length:"):
                    return max(0, int(line.split(":", 1)[1].strip()))
        except (ValueError, IndexError):
            pass
        return 0

    def mark_processing(self):
        self.state = ConnectionState.PROCESSING

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes, bounded by write_timeout.

        Returns:
            True if everything was sent, False if the connection is gone.
        """
        if self.is_closed:
            return False

        self.state = ConnectionState.WRITING
        try:
            self.socket.settimeout(as_socket_timeout(self.write_timeout))
            self.socket.sendall(data)
            return True
        except socket.timeout:
            logger.warning(f"[{self.id}] Write timeout")
            return False
        except OSError as e:
            # Covers reset/broken pipe and a socket closed by abort()
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        finally:
            if not self.is_closed:
                try:
                    self.socket.settimeout(as_socket_timeout(self.read_timeout))
                except OSError:
                    pass

    def set_keep_alive(self):
        """Mark connection idle, ready for the next request."""
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def interrupt(self):
        """
        Wake a worker blocked in recv() on this connection.

        shutdown(SHUT_RDWR) makes a pending recv() return b"" so the worker
        leaves its keep-alive loop and closes the connection itself.
        """
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Already disconnected

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): send FIN
        2. drain whatever the client still sends (bounded to 0.5s)
        3. close(): release the descriptor
        """
        with self._close_lock:
            if self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
                return
            self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

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

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def abort(self):
        """
        Tear the connection down immediately with a TCP reset.

        Unlike close(), errors from the final close() propagate: a forced
        shutdown needs to know if a descriptor could not be released.
        """
        with self._close_lock:
            if self.state == ConnectionState.CLOSED:
                return
            self.state = ConnectionState.CLOSED

        try:
            # l_onoff=1, l_linger=0 → close() sends RST
            self.socket.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))
            # Wake a worker blocked in recv() so the descriptor is released now
            self.socket.shutdown(socket.SHUT_RD)
        except OSError:
            pass

        self.socket.close()
        logger.debug(f"[{self.id}] Connection aborted")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
