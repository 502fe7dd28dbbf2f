"""Helpers for setting up repositories and resources in tests."""

from __future__ import annotations

import os
import random
import shlex
import subprocess
import tempfile
import threading
from pathlib import Path

from .reserved_state import ReservedState, write_reserved_state

_WINDOWS_SHELL = "C:/Program Files/Git/bin/sh.exe"
_PORT_RANGE = range(37000, 38000)

_ports_lock = threading.Lock()
_ports: list[int] | None = None


def _shell_argv(command: str) -> list[str]:
    if os.name == "nt":
        return [_WINDOWS_SHELL, "--login", "-c", command]
    return ["sh", "-c", command]


def _q(path: str | os.PathLike[str]) -> str:
    return shlex.quote(Path(path).as_posix())


def run_checked(command: str) -> None:
    """Run ``command`` in a shell; raise ``CalledProcessError`` if it fails."""
    print(f"> RUN: {command}")
    subprocess.run(_shell_argv(command), check=True)


def setup_pre_genesis_repository(
    path: str | os.PathLike[str], reserved_state: ReservedState
) -> None:
    """Create ``repository/repo`` under ``path`` holding one commit of the reserved state."""
    run_checked(
        f"cd {_q(path)} && mkdir repository && cd repository && mkdir repo && cd repo && git init"
    )
    repo = Path(path) / "repository" / "repo"
    write_reserved_state(repo, reserved_state)
    print(f"> Pre-genesis repository is created at {repo.as_posix()}")

    run_checked(f"cd {_q(repo)} && git add -A")
    run_checked(
        f"cd {_q(repo)} && git config user.name 'Test' && git config user.email 'test@example.com'"
    )
    run_checked(f"cd {_q(repo)} && git commit -m 'genesis'")


def copy_repository(
    source_path: str | os.PathLike[str], dest_path: str | os.PathLike[str]
) -> None:
    """Copy ``source_path/repository/repo`` to ``dest_path/repository/repo``."""
    dest_repository = Path(dest_path) / "repository"
    run_checked(f"mkdir -p {_q(dest_repository)}")
    run_checked(
        f"cp -r {_q(Path(source_path) / 'repository' / 'repo')} {_q(dest_repository / 'repo')}"
    )


def create_temp_dir() -> str:
    """Create a temporary directory that is left in place; return it with '/' separators."""
    return Path(tempfile.mkdtemp()).as_posix()


def dispense_port() -> int:
    """Hand out a distinct port from 37000 to 37999, in random order."""
    global _ports
    with _ports_lock:
        if _ports is None:
            _ports = list(_PORT_RANGE)
            random.shuffle(_ports)
        if not _ports:
            raise RuntimeError("no more test ports: more than 1000 were dispensed")
        return _ports.pop()