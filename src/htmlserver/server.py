"""
=============================================================================
SERVER LIFECYCLE
=============================================================================

ServerHandle owns one SocketServer and the background thread running its
accept loop. It exposes exactly two operations:

    handle = ServerHandle.start(config, handler)   # returns immediately
    handle.stop()                                  # bounded shutdown

=============================================================================
START
=============================================================================

    start()
      ├── config.validate()            ValueError for a bad config
      ├── build SocketServer
      └── spawn "accept-loop" thread ──► serve(): bind, listen, accept...
                                              │
                                              └── on exit, ANY reason:
                                                    record outcome
                                                    set completion event

start() does not wait for the bind. A bind failure is logged and stored
on handle.outcome; it never surfaces as an exception from start() or
stop().

=============================================================================
STOP
=============================================================================

    RUNNING ──► DRAINING ──────────────────────────────► STOPPED
                   │                                        ▲
                   │ deadline passed / shutdown failed      │
                   ▼                                        │
              FORCE_CLOSING ── close() ok ──────────────────┘
                   │
                   └── close() failed ──► ForceCloseError raised

    1. Graceful: stop accepting, close idle connections, wait up to
       SHUTDOWN_TIMEOUT (5s) for in-flight requests to finish.
    2. Forced: reset every remaining connection.
    3. Wait for the accept thread's completion event.

Only a failed forced close raises, and then stop() returns without
waiting for the completion event. Calling stop() again retries the forced
close; a call made while another is draining waits for that one.

=============================================================================
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .config import ServerConfig
from .core import ForceCloseError, ShutdownTimeoutError, SocketServer
from .core.socket_server import RequestHandler
from .handlers import StaticFileHandler, register_pages
from .http import Router
from .middleware import LoggingMiddleware, MiddlewarePipeline
from .templates import TemplateSet, load_templates


logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT = 5.0
"""Seconds a graceful shutdown may take before connections are reset."""


class LifecycleState(Enum):
    RUNNING = "running"
    DRAINING = "draining"
    FORCE_CLOSING = "force_closing"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ServeOutcome:
    """How the accept loop ended: closed normally, or failed with error."""

    error: Optional[BaseException] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def closed(self) -> bool:
        return self.error is None


class ServerHandle:
    """
    A running HTML server.

    Usage:
        handle = ServerHandle.start(ServerConfig(), create_app(config))
        ...
        handle.stop()

    Attributes:
        shutdown_timeout: Graceful drain deadline used by stop().
    """

    shutdown_timeout: float = SHUTDOWN_TIMEOUT
    POLL_INTERVAL = 0.05

    def __init__(self, config: ServerConfig, socket_server: SocketServer):
        self.config = config
        self._server = socket_server

        self._done = threading.Event()
        self._lock = threading.Lock()
        self._state = LifecycleState.RUNNING
        self._outcome: Optional[ServeOutcome] = None
        self._thread = threading.Thread(target=self._serve, name="accept-loop", daemon=True)

    # =========================================================================
    # START
    # =========================================================================

    @classmethod
    def start(cls, config: ServerConfig, handler: RequestHandler) -> "ServerHandle":
        """
        Launch the server on a background thread.

        Args:
            config: Server configuration. Validated before anything starts.
            handler: Request handler (router wrapped in middleware).

        Returns:
            A handle in the RUNNING state. The listener may not be bound yet;
            use wait_ready() when that matters.

        Raises:
            ValueError: If config is invalid.
        """
        config.validate()

        handle = cls(config, SocketServer(config, handler))
        logger.info(f"Service started : Host={config.bind_address}")
        handle._thread.start()
        return handle

    def _serve(self):
        try:
            self._server.serve()
        except Exception as e:
            logger.error(f"Accept loop exited with error: {e}")
            self._outcome = ServeOutcome(error=e)
        else:
            self._outcome = ServeOutcome()
        finally:
            self._done.set()

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def outcome(self) -> Optional[ServeOutcome]:
        """None while the accept loop is still running."""
        return self._outcome

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """Bound (host, port), once listening. Resolves port 0."""
        return self._server.server_address

    @property
    def is_serving(self) -> bool:
        return not self._done.is_set()

    def wait_ready(self, timeout: Optional[float] = None) -> Optional[Tuple[str, int]]:
        """
        Wait until the listener is bound.

        Returns:
            The bound address, or None if binding failed or timed out.
        """
        self._server.wait_ready(timeout)
        return self._server.server_address

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for the accept loop to exit. True if it has."""
        return self._done.wait(timeout)

    def _set_state(self, state: LifecycleState):
        with self._lock:
            self._state = state

    # =========================================================================
    # STOP
    # =========================================================================

    def stop(self) -> None:
        """
        Shut the server down: graceful drain, then forced close.

        Repeated or concurrent calls are safe:

            STOPPED         return immediately
            DRAINING        wait for the first call to finish draining
            FORCE_CLOSING   a forced close failed earlier: retry it

        Every call that returns normally has seen the completion event.

        Raises:
            ForceCloseError: If the forced close could not release every
                socket. The completion event is not awaited in that case.
        """
        with self._lock:
            state = self._state
            if state == LifecycleState.RUNNING:
                self._state = LifecycleState.DRAINING

        if state == LifecycleState.STOPPED:
            return

        if state == LifecycleState.RUNNING:
            logger.info("Service stopping")
            try:
                self._server.shutdown(self.shutdown_timeout)
            except (ShutdownTimeoutError, OSError) as e:
                logger.warning(f"Graceful shutdown failed ({e}), forcing close")
                self._force_close()
        elif state == LifecycleState.FORCE_CLOSING:
            self._force_close()
        else:
            # Another stop() is draining; join its forced close if it gets there
            while not self._done.wait(self.POLL_INTERVAL):
                if self._state == LifecycleState.FORCE_CLOSING:
                    self._force_close()
                    break

        self._done.wait()

        with self._lock:
            stopped_now = self._state != LifecycleState.STOPPED
            self._state = LifecycleState.STOPPED
        if stopped_now:
            logger.info("Stopped")

    def _force_close(self):
        self._set_state(LifecycleState.FORCE_CLOSING)
        try:
            self._server.close()
        except ForceCloseError as e:
            logger.error(f"Service stopping : Error={e}")
            raise


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(config: ServerConfig, templates: Optional[TemplateSet] = None) -> RequestHandler:
    """
    Build the request handler: pages and static files behind the access log.

        LoggingMiddleware ──► Router
                                ├── GET /               home
                                ├── GET /second         second view
                                ├── GET /third/:number  third view
                                └── GET /static/*path   static files

    Args:
        config: Supplies static_dir, static_url_prefix and log_format.
        templates: Pre-loaded templates; loaded from the package if None.
    """
    router = Router()
    register_pages(router, templates or load_templates())

    if config.static_dir:
        prefix = config.static_url_prefix.rstrip("/")
        static = StaticFileHandler(config.static_dir, url_prefix=prefix)
        router.get(f"{prefix}/*path", name="static")(static.handle)

    pipeline = MiddlewarePipeline().add(LoggingMiddleware(log_format=config.log_format))

    for route in router.routes():
        logger.debug(f"Route {route.method or '*'} {route.path} ({route.name})")
    logger.debug(f"Middleware ({len(pipeline)}): {[m.name for m in pipeline]}")

    return pipeline.wrap(router.handle)
