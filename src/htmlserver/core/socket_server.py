"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

The HTTP/1.1 engine underneath the lifecycle manager: it binds the
listener, accepts connections, hands each one to the thread pool and runs
the keep-alive request loop on it.

    serve()      Blocks: bind, listen, accept until shut down.
    shutdown()   Graceful: stop accepting, let in-flight requests finish.
    close()      Forced: stop accepting, reset every open connection.

=============================================================================
SOCKET LIFECYCLE (server side)
=============================================================================

    1. socket()    Create the descriptor
    2. bind()      Reserve host:port (fails if another process has it)
    3. listen()    Kernel starts queueing incoming connections
    4. accept()    Returns a NEW socket per client; listener keeps going
    5. close()     Release the listener

accept() runs with a short timeout so the loop notices shutdown even on
platforms where closing the listener does not wake a blocked accept.

=============================================================================
GRACEFUL VS FORCED
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ shutdown(timeout)                                                   │
    │   close listener                                                    │
    │   loop every 50ms:                                                  │
    │     interrupt idle keep-alive connections                           │
    │     no connections left?       -> return                            │
    │     deadline passed?           -> raise ShutdownTimeoutError        │
    ├─────────────────────────────────────────────────────────────────────┤
    │ close()                                                             │
    │   close listener                                                    │
    │   abort() every connection (RST, unsent data dropped)               │
    │   any descriptor failed to close -> raise ForceCloseError           │
    └─────────────────────────────────────────────────────────────────────┘

Neither call waits for serve() to return; the caller watches for that
separately.

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR lets a restarted server bind while old connections sit in
TIME_WAIT. It does not allow two live listeners on one port, so a second
server on the same address still fails with "Address already in use".

TCP_NODELAY disables Nagle's algorithm; responses are written in one
sendall() and should leave immediately.

=============================================================================
"""

import socket
import time
import logging
import threading
from typing import Callable, Dict, Optional, Tuple

from ..config import ServerConfig
from ..http.request import HTTPParseError, HTTPRequest, RequestParser
from ..http.response import HTTPResponse, ResponseBuilder, internal_error
from ..http.status_codes import HTTPStatus
from .connection import Connection
from .thread_pool import ThreadPool


logger = logging.getLogger(__name__)

RequestHandler = Callable[[HTTPRequest], HTTPResponse]


class ShutdownTimeoutError(Exception):
    """Graceful shutdown ran out of time with connections still active."""

    def __init__(self, message: str, active_connections: int = 0):
        super().__init__(message)
        self.active_connections = active_connections


class ForceCloseError(Exception):
    """Forced close could not release every socket."""


class SocketServer:
    """
    Threaded HTTP/1.1 server.

    Usage:
        server = SocketServer(config, handler)
        threading.Thread(target=server.serve).start()
        server.wait_ready()
        ...
        server.shutdown(timeout=5.0)
    """

    ACCEPT_POLL_INTERVAL = 0.5
    DRAIN_POLL_INTERVAL = 0.05

    def __init__(self, config: ServerConfig, handler: RequestHandler):
        self.config = config
        self.handler = handler

        self._parser = RequestParser(max_request_size=config.max_request_size)
        self._pool = ThreadPool(
            min_workers=config.min_workers,
            max_workers=config.max_workers,
            queue_size=config.backlog,
        )

        self._socket: Optional[socket.socket] = None
        self._connections: Dict[str, Connection] = {}
        self._lock = threading.Lock()
        self._closing = False
        self._ready = threading.Event()

        self.server_address: Optional[Tuple[str, int]] = None

    # =========================================================================
    # READINESS
    # =========================================================================

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until serve() is listening or has failed to bind."""
        return self._ready.wait(timeout)

    # =========================================================================
    # SERVING
    # =========================================================================

    def _create_socket(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.config.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(self.ACCEPT_POLL_INTERVAL)
        return sock

    def serve(self):
        """
        Bind, listen and accept connections until shut down.

        Returns normally once shutdown() or close() has been called, even
        if that happened before the listener was bound.

        Raises:
            OSError: If binding or listening fails, or accept() fails for
                a reason other than shutdown.
        """
        sock = self._create_socket()

        with self._lock:
            if self._closing:
                sock.close()
                self._ready.set()
                return
            self._socket = sock

        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
            self.server_address = sock.getsockname()[:2]
        except OSError as e:
            self._ready.set()
            sock.close()
            if self._closing:
                return  # Listener closed underneath bind() by shutdown
            logger.error(f"Failed to bind to {self.config.bind_address}: {e}")
            raise

        self._pool.start()
        self._ready.set()
        logger.info(f"Listening on {self.server_address[0]}:{self.server_address[1]}")

        try:
            self._accept_loop(sock)
        finally:
            self._pool.shutdown(wait=False)
            sock.close()

    def _accept_loop(self, sock: socket.socket):
        while not self._closing:
            try:
                client_socket, client_address = sock.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._closing:
                    break
                logger.error(f"Accept error: {e}")
                raise

            self._dispatch(client_socket, client_address)

    def _dispatch(self, client_socket: socket.socket, client_address: tuple):
        try:
            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                read_timeout=self.config.read_timeout,
                write_timeout=self.config.write_timeout,
                idle_timeout=self.config.idle_timeout,
                max_header_bytes=self.config.max_header_bytes,
                max_request_size=self.config.max_request_size,
            )
        except OSError as e:
            # Client went away between accept() and socket setup
            logger.warning(f"Dropping connection from {client_address[0]}: {e}")
            try:
                client_socket.close()
            except OSError:
                pass
            return

        logger.debug(f"[{conn.id}] Accepted connection from {client_address[0]}:{client_address[1]}")

        with self._lock:
            accepted = not self._closing
            if accepted:
                self._connections[conn.id] = conn

        if not accepted:
            conn.close()
            return

        if not self._pool.submit(self._process_connection, conn):
            logger.warning(f"[{conn.id}] Worker queue full, rejecting connection (pool: {self._pool.stats})")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server busy")
            conn.close()
            self._forget(conn)

    def _forget(self, conn: Connection):
        with self._lock:
            self._connections.pop(conn.id, None)

    # =========================================================================
    # REQUEST LOOP (runs in a worker thread)
    # =========================================================================

    def _process_connection(self, conn: Connection):
        """
        Serve requests on one connection until either side closes it.

            read_request ─► parse ─► handler ─► send ─► keep-alive? ─┐
                  ▲                                                   │
                  └───────────────────────────────────────────────────┘

        Once shutdown has begun every response carries "Connection: close"
        and the loop ends after it is written.
        """
        try:
            with conn:
                while True:
                    try:
                        raw_request = conn.read_request()
                    except TimeoutError:
                        self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                        break
                    except HTTPParseError as e:
                        self._send_error(conn, e.status_code, str(e))
                        break

                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        self._send_error(conn, e.status_code, str(e))
                        break

                    conn.mark_processing()

                    try:
                        response = self.handler(request)
                    except Exception as e:
                        logger.exception(f"[{conn.id}] Handler error: {e}")
                        response = internal_error()

                    keep_alive = (
                        request.is_keep_alive
                        and not self._closing
                        and not response.closes_connection
                    )
                    if keep_alive:
                        response.headers.setdefault("Connection", "keep-alive")
                        response.headers.setdefault("Keep-Alive", f"timeout={int(self.config.idle_timeout)}")
                    else:
                        response.headers["Connection"] = "close"

                    data = response.to_bytes(
                        self.config.server_name,
                        include_body=request.method != "HEAD",
                    )
                    if not conn.send_response(data):
                        break
                    if not keep_alive:
                        break

                    conn.set_keep_alive()
                    # shutdown() may have scanned for idle connections just
                    # before this one became idle
                    if self._closing:
                        break
        finally:
            self._forget(conn)

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """Write an error response that also ends the connection."""
        response = (
            ResponseBuilder()
            .status(status)
            .text(message + "\n")
            .close_connection()
            .build()
        )
        conn.send_response(response.to_bytes(self.config.server_name))

    # =========================================================================
    # STOPPING
    # =========================================================================

    def _close_listener(self) -> Optional[OSError]:
        """Stop accepting. Returns the close error, if any."""
        with self._lock:
            self._closing = True
            sock = self._socket

        if sock is None:
            return None

        try:
            # Wakes a thread blocked in accept() on Linux
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Not connected / already shut down

        try:
            sock.close()
        except OSError as e:
            return e
        return None

    def shutdown(self, timeout: float):
        """
        Stop accepting and wait for active connections to finish.

        Idle keep-alive connections are closed right away; connections in
        the middle of a request are left alone until their response has
        been written.

        Args:
            timeout: Seconds to wait for active connections.

        Raises:
            ShutdownTimeoutError: If connections are still active at the
                deadline. They are left open for close() to deal with.
            OSError: If the listener could not be closed.
        """
        deadline = time.monotonic() + timeout

        error = self._close_listener()
        if error is not None:
            raise error

        while True:
            with self._lock:
                connections = list(self._connections.values())

            if not connections:
                logger.debug("All connections drained")
                return

            for conn in connections:
                if conn.is_idle:
                    conn.interrupt()

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ShutdownTimeoutError(
                    f"{len(connections)} connection(s) still active after {timeout}s",
                    active_connections=len(connections),
                )

            time.sleep(min(self.DRAIN_POLL_INTERVAL, remaining))

    def close(self):
        """
        Stop accepting and reset every open connection immediately.

        Raises:
            ForceCloseError: If the listener or any connection could not be
                closed. Every socket is still attempted first.
        """
        errors = []

        error = self._close_listener()
        if error is not None:
            errors.append(error)

        with self._lock:
            connections = list(self._connections.values())

        for conn in connections:
            try:
                conn.abort()
            except OSError as e:
                logger.error(f"[{conn.id}] Failed to close connection: {e}")
                errors.append(e)

        if connections:
            logger.warning(f"Force-closed {len(connections)} connection(s)")

        if errors:
            raise ForceCloseError(
                f"Failed to close {len(errors)} socket(s): {errors[0]}"
            ) from errors[0]
