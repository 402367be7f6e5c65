"""
pytest configuration and fixtures.
"""

import http.client
import socket
from typing import Generator, Tuple

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from htmlserver import ServerConfig, ServerHandle, create_app
from htmlserver.templates import TemplateSet, load_templates


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample browser-style GET request."""
    return (
        b"GET /third/7?ref=nav HTTP/1.1\r\n"
        b"Host: localhost:8000\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/html\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample form POST with a body."""
    body = b"name=John&email=john%40example.com"
    return (
        b"POST /second HTTP/1.1\r\n"
        b"Host: localhost:8000\r\n"
        b"Content-Type: application/x-www-form-urlencoded\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
        + body
    )


@pytest.fixture
def config() -> ServerConfig:
    """Test configuration on an ephemeral loopback port."""
    return ServerConfig(
        bind_address="127.0.0.1:0",
        min_workers=2,
        max_workers=4,
        log_level="WARNING",
    )


@pytest.fixture(scope="session")
def templates() -> TemplateSet:
    return load_templates()


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def running_server(config: ServerConfig, templates: TemplateSet) -> Generator[ServerHandle, None, None]:
    """The full application, started and bound."""
    handle = ServerHandle.start(config, create_app(config, templates))
    assert handle.wait_ready(timeout=5.0) is not None, "Server failed to start"

    yield handle

    handle.stop()


def http_get(address: Tuple[str, int], path: str, timeout: float = 5.0) -> Tuple[int, dict, bytes]:
    """One GET on a fresh connection. Returns (status, headers, body)."""
    conn = http.client.HTTPConnection(address[0], address[1], timeout=timeout)
    try:
        conn.request("GET", path)
        response = conn.getresponse()
        return response.status, dict(response.getheaders()), response.read()
    finally:
        conn.close()
