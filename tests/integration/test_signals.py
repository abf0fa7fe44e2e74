"""
End-to-end process tests: ``python -m statusserver`` under real signals.
"""

import json
import os
import signal
import socket
import subprocess
import sys
import time
import urllib.request
from pathlib import Path

import pytest


pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals only")

SRC = Path(__file__).parent.parent.parent / "src"


def spawn(port: int, *args: str) -> subprocess.Popen:
    env = dict(os.environ)
    env["PYTHONPATH"] = str(SRC) + os.pathsep + env.get("PYTHONPATH", "")
    env["PORT"] = str(port)
    env["LOG_LEVEL"] = "INFO"
    return subprocess.Popen(
        [sys.executable, "-m", "statusserver", "--host", "127.0.0.1", *args],
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )


def wait_for_port(port: int, proc: subprocess.Popen, timeout: float = 10.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if proc.poll() is not None:
            return False
        try:
            socket.create_connection(("127.0.0.1", port), timeout=0.5).close()
            return True
        except OSError:
            time.sleep(0.05)
    return False


@pytest.fixture
def process():
    procs = []

    def factory(port: int, *args: str) -> subprocess.Popen:
        proc = spawn(port, *args)
        procs.append(proc)
        return proc

    yield factory

    for proc in procs:
        if proc.poll() is None:
            proc.kill()
            proc.communicate(timeout=5)


class TestSignals:

    @pytest.mark.parametrize("sig", [signal.SIGTERM, signal.SIGINT])
    def test_signal_stops_cleanly(self, process, free_port, sig):
        proc = process(free_port)
        assert wait_for_port(free_port, proc)

        with urllib.request.urlopen(f"http://127.0.0.1:{free_port}/healthz", timeout=5) as resp:
            assert resp.status == 200
            assert json.loads(resp.read())["status"] == "healthy"

        proc.send_signal(sig)
        _, stderr = proc.communicate(timeout=15)

        assert proc.returncode == 0
        assert f"Starting web server on http://localhost:{free_port} ..." in stderr
        assert "Server configuration - ReadTimeout: 15s | WriteTimeout: 15s | IdleTimeout: 1m0s" in stderr
        assert "Incoming request - Method: GET | Path: /healthz" in stderr
        assert f"Received shutdown signal: {sig.name}" in stderr
        assert "Attempting graceful shutdown..." in stderr
        assert stderr.rstrip().endswith("Server stopped successfully")

    def test_port_in_use_exits_nonzero(self, process, free_port):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", free_port))
            blocker.listen(1)

            proc = process(free_port)
            _, stderr = proc.communicate(timeout=15)

        assert proc.returncode == 1
        assert "Server failed to start: " in stderr
        assert "Server stopped successfully" not in stderr
