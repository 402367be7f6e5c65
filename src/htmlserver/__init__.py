"""
=============================================================================
HTMLSERVER
=============================================================================

A small HTML web server: a handful of server-rendered Jinja2 views and a
static asset directory, served by a threaded HTTP/1.1 engine with a
bounded two-phase shutdown.

=============================================================================
PACKAGE LAYOUT
=============================================================================

    htmlserver/
        server.py        ServerHandle (start/stop lifecycle), create_app()
        config.py        ServerConfig
        templates.py     TemplateSet, Jinja2 environment and filters
        core/            SocketServer, Connection, ThreadPool
        http/            request parsing, responses, router, status codes
        middleware/      pipeline and access logging
        handlers/        page views and static files
        templates/       *.html
        static/          css, js

=============================================================================
QUICK START
=============================================================================

    from htmlserver import ServerConfig, ServerHandle, create_app

    config = ServerConfig(bind_address="127.0.0.1:0")
    handle = ServerHandle.start(config, create_app(config))
    print(handle.wait_ready())
    ...
    handle.stop()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import (
    SHUTDOWN_TIMEOUT,
    LifecycleState,
    ServeOutcome,
    ServerHandle,
    create_app,
)

__all__ = [
    "ServerConfig",
    "ServerHandle",
    "ServeOutcome",
    "LifecycleState",
    "SHUTDOWN_TIMEOUT",
    "create_app",
    "__version__",
]
