"""A thin driver for the ``git`` command line and for shell commands."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

from .types import (
    CommitHash,
    InvalidRepositoryError,
    NotFoundError,
    RawRepositoryError,
    UnknownError,
)

_WINDOWS_SHELL = "C:/Program Files/Git/bin/sh.exe"


def _git_environment() -> dict[str, str]:
    env = dict(os.environ)
    env["LC_ALL"] = "C"
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


class Git:
    """Runs ``git`` commands inside one directory."""

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self.directory = Path(directory)

    def _execute(
        self, args: tuple[str, ...], input_text: str | None
    ) -> subprocess.CompletedProcess[str]:
        if not self.directory.is_dir():
            raise NotFoundError(f"directory does not exist: {self.directory}")
        try:
            return subprocess.run(
                ["git", *args],
                cwd=self.directory,
                input=input_text,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                env=_git_environment(),
                check=False,
            )
        except FileNotFoundError as exc:
            raise UnknownError("git executable not found") from exc
        except OSError as exc:
            raise UnknownError(f"failed to execute git: {exc}") from exc

    def run(self, *args: str, input_text: str | None = None) -> str:
        """Run ``git`` with ``args`` and return its standard output.

        Raises ``RawRepositoryError`` when git exits with a failure.
        """
        result = self._execute(args, input_text)
        if result.returncode != 0:
            message = result.stderr.strip() or result.stdout.strip()
            raise RawRepositoryError(
                f"`git {' '.join(args)}` failed ({result.returncode}): {message}"
            )
        return result.stdout

    def try_run(self, *args: str, input_text: str | None = None) -> str | None:
        """Run ``git`` with ``args``; return its output, or ``None`` if it failed."""
        result = self._execute(args, input_text)
        if result.returncode != 0:
            return None
        return result.stdout

    def rev_parse(self, revision: str) -> CommitHash:
        """Resolve a revision selection to the commit it names."""
        output = self.try_run("rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}")
        if output is None or not output.strip():
            raise NotFoundError(f"revision {revision!r} does not name a commit")
        return CommitHash.from_hex(output.strip())

    def parents(self, commit: CommitHash) -> list[CommitHash]:
        """Return the parents of ``commit`` in order."""
        output = self.try_run("rev-list", "--parents", "-n", "1", commit.to_hex())
        if output is None or not output.strip():
            raise NotFoundError(f"commit {commit} does not exist")
        _, *parent_ids = output.split()
        return [CommitHash.from_hex(parent) for parent in parent_ids]

    def workdir(self) -> Path:
        """Return the top of the working tree."""
        output = self.try_run("rev-parse", "--show-toplevel")
        if output is None or not output.strip():
            raise InvalidRepositoryError(f"{self.directory} has no working tree")
        return Path(output.strip())


def run_command(command: str) -> None:
    """Run ``command`` in a shell; raise ``UnknownError`` if it fails."""
    print(f"> RUN: {command}")
    if os.name == "nt":
        argv = [_WINDOWS_SHELL, "--login", "-c", command]
    else:
        argv = ["sh", "-c", command]
    try:
        process = subprocess.Popen(argv)
    except OSError as exc:
        raise UnknownError("failed to execute process") from exc
    try:
        code = process.wait()
    except OSError as exc:
        raise UnknownError("failed to wait on child") from exc
    if code != 0:
        raise UnknownError("failed to run process")