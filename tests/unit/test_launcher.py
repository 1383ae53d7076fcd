"""Unit tests for the server launcher."""

import socket

import pytest

from milestone_tracker import launcher
from milestone_tracker.launcher import PortManager


@pytest.mark.unit
class TestPortManager:
    def test_busy_port_is_skipped(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", 0))
            busy = sock.getsockname()[1]

            assert PortManager.is_port_free("127.0.0.1", busy) is False
            found = PortManager.find_free_port("127.0.0.1", busy, max_attempts=20)

        assert found is not None
        assert found != busy


@pytest.mark.unit
class TestMain:
    def test_runs_uvicorn_with_resolved_port(self, monkeypatch):
        calls = {}
        monkeypatch.setattr(launcher.PortManager, "find_free_port", staticmethod(lambda host, port: port))
        monkeypatch.setattr(launcher.uvicorn, "run", lambda app, **kwargs: calls.update(app=app, **kwargs))

        assert launcher.main(["--host", "127.0.0.1", "--port", "9123"]) == 0
        assert calls["app"] == "milestone_tracker.main:app"
        assert calls["host"] == "127.0.0.1"
        assert calls["port"] == 9123

    def test_no_free_port_fails(self, monkeypatch):
        monkeypatch.setattr(launcher.PortManager, "is_port_free", staticmethod(lambda host, port: False))
        monkeypatch.setattr(launcher.uvicorn, "run", lambda *a, **k: pytest.fail("server started"))

        assert launcher.main(["--port", "9123", "--no-port-scan"]) == 1
