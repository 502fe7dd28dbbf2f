"""Serving repositories over the git protocol with ``git daemon``."""

from __future__ import annotations

import logging
import os
import signal
import socket
import subprocess
import tempfile
import time
from pathlib import Path
from types import TracebackType

logger = logging.getLogger(__name__)

_STARTUP_TIMEOUT_SECONDS = 10.0
_POLL_INTERVAL_SECONDS = 0.05


class GitServer:
    """A running ``git daemon`` process; stop it with :meth:`stop` or ``with``."""

    def __init__(
        self,
        child: subprocess.Popen[bytes],
        daemon_pid: int,
        pid_directory: tempfile.TemporaryDirectory[str] | None = None,
    ) -> None:
        self.child = child
        self.daemon_pid = daemon_pid
        self._pid_directory = pid_directory
        self._stopped = False

    @property
    def running(self) -> bool:
        """Whether the daemon process is still alive."""
        return self.child.poll() is None

    def stop(self) -> None:
        """Kill the daemon and wait for it; calling it again does nothing."""
        if self._stopped:
            return
        self._stopped = True
        logger.info("killing git daemon (%d)..", self.daemon_pid)
        if self.child.poll() is None:
            self.child.kill()
        self.child.wait()
        if self.daemon_pid != self.child.pid:
            try:
                os.kill(self.daemon_pid, signal.SIGTERM)
            except OSError:
                pass
        if self._pid_directory is not None:
            self._pid_directory.cleanup()
            self._pid_directory = None
        logger.info("killed git daemon (%d)!", self.daemon_pid)

    def __enter__(self) -> GitServer:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()


def _read_pid(pid_path: Path) -> int | None:
    try:
        text = pid_path.read_text(encoding="utf-8")
    except OSError:
        return None
    if not text.endswith("\n"):
        return None
    try:
        return int(text.strip())
    except ValueError:
        return None


def _accepts_connections(port: int) -> bool:
    try:
        with socket.create_connection(("127.0.0.1", port), timeout=0.5):
            return True
    except OSError:
        return False


def _abort(child: subprocess.Popen[bytes], pid_directory: tempfile.TemporaryDirectory[str]) -> None:
    if child.poll() is None:
        child.kill()
    child.wait()
    pid_directory.cleanup()


def run_server_legacy(path: str | os.PathLike[str], port: int) -> GitServer:
    """Serve every repository under ``path`` read-only on ``port``.

    Returns once the daemon has written its pid and accepts connections.
    Raises ``RuntimeError`` if it exits or does not come up in time.
    """
    pid_directory = tempfile.TemporaryDirectory()
    pid_path = Path(pid_directory.name) / "pid"
    base_path = Path(path).as_posix()
    try:
        child = subprocess.Popen(
            [
                "git",
                "daemon",
                f"--base-path={base_path}",
                "--export-all",
                f"--port={port}",
                f"--pid-file={pid_path.as_posix()}",
            ]
        )
    except OSError as exc:
        pid_directory.cleanup()
        raise RuntimeError(f"failed to start git daemon: {exc}") from exc

    deadline = time.monotonic() + _STARTUP_TIMEOUT_SECONDS
    daemon_pid: int | None = None
    while True:
        if child.poll() is not None:
            code = child.returncode
            pid_directory.cleanup()
            raise RuntimeError(f"git daemon exited early with status {code}")
        if daemon_pid is None:
            daemon_pid = _read_pid(pid_path)
        if daemon_pid is not None and _accepts_connections(port):
            break
        if time.monotonic() > deadline:
            _abort(child, pid_directory)
            raise RuntimeError("git daemon did not start in time")
        time.sleep(_POLL_INTERVAL_SECONDS)

    print(f"PID: {daemon_pid}")
    return GitServer(child, daemon_pid, pid_directory)