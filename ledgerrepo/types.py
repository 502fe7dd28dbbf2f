"""Commit hashes, semantic commits, diffs and raw repository errors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .reserved_state import ReservedState

COMMIT_HASH_LENGTH = 20


@dataclass(frozen=True, order=True)
class CommitHash:
    """A 20-byte git object id, shown as lower-case hex."""

    hash: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.hash, (bytes, bytearray)):
            raise TypeError("commit hash must be bytes")
        if len(self.hash) != COMMIT_HASH_LENGTH:
            raise ValueError("invalid length")
        object.__setattr__(self, "hash", bytes(self.hash))

    def to_hex(self) -> str:
        return self.hash.hex()

    @classmethod
    def from_hex(cls, text: str) -> CommitHash:
        try:
            raw = bytes.fromhex(text.strip())
        except ValueError as exc:
            raise ValueError(f"invalid hex: {text!r}") from exc
        return cls(raw)

    def __str__(self) -> str:
        return self.to_hex()


class RawRepositoryError(Exception):
    """Base error of raw repository operations."""

    prefix = "git error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.prefix}: {self.detail}"


class NotFoundError(RawRepositoryError):
    """The given git object does not exist."""

    prefix = "not found"


class InvalidRepositoryError(RawRepositoryError):
    """An assumption of the operation (no merge commit, a merge base, ...) is violated."""

    prefix = "the repository is invalid"


class UnknownError(RawRepositoryError):
    """Any other failure."""

    prefix = "unknown error"


@dataclass(frozen=True)
class NoDiff:
    """The commit changes no files."""


@dataclass(frozen=True)
class ReservedDiff:
    """The commit rewrites the reserved state."""

    state: ReservedState


@dataclass(frozen=True)
class NonReservedDiff:
    """The commit changes files outside the reserved state; identified by a hash."""

    hash: str


@dataclass(frozen=True)
class GeneralDiff:
    """The commit changes both the reserved state and other files."""

    state: ReservedState
    hash: str


Diff = Union[NoDiff, ReservedDiff, NonReservedDiff, GeneralDiff]


@dataclass
class SemanticCommit:
    """A commit with an abstracted diff.

    ``author`` only describes the physical git commit.
    """

    title: str
    body: str
    diff: Diff
    author: str
    timestamp: int