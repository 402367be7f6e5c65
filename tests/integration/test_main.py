"""
Tests for the command line entry point.
"""

import pytest

from htmlserver import __main__ as cli
from htmlserver import __version__


@pytest.fixture
def no_wait(monkeypatch):
    """Replace the signal wait so main() shuts down straight away."""
    calls = []
    monkeypatch.setattr(cli, "wait_for_signal", lambda event: calls.append(event))
    monkeypatch.setattr(cli, "setup_logging", lambda level: None)
    return calls


def test_version(capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.build_parser().parse_args(["--version"])

    assert exc_info.value.code == 0
    assert capsys.readouterr().out.strip() == f"htmlserver {__version__}"


def test_rejects_unknown_log_level():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["--log-level", "LOUD"])


def test_main_starts_and_stops(monkeypatch, no_wait):
    monkeypatch.setenv("HTML_BIND_ADDRESS", "127.0.0.1:0")

    assert cli.main(["--log-level", "WARNING"]) == 0
    assert len(no_wait) == 1


def test_main_invalid_bind_address(monkeypatch, no_wait):
    monkeypatch.setenv("HTML_BIND_ADDRESS", "not-an-address")

    assert cli.main([]) == 2
    assert no_wait == []


def test_main_invalid_timeout(monkeypatch, no_wait):
    monkeypatch.setenv("HTML_READ_TIMEOUT", "later")

    assert cli.main([]) == 2


def test_main_missing_static_dir(monkeypatch, tmp_path, no_wait):
    monkeypatch.setenv("HTML_BIND_ADDRESS", "127.0.0.1:0")
    monkeypatch.setenv("HTML_STATIC_DIR", str(tmp_path / "missing"))

    assert cli.main([]) == 2
