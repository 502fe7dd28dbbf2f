"""The reserved state and its on-disk layout under a ``reserved/`` directory."""

from __future__ import annotations

import json
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

RESERVED_DIRECTORY = "reserved"
GENESIS_INFO_FILE = "genesis_info.json"
CONSENSUS_LEADER_ORDER_FILE = "consensus_leader_order.json"
VERSION_FILE = "version"
MEMBERS_DIRECTORY = "members"

Member = dict[str, Any]


@dataclass
class ReservedState:
    """Chain governance data kept in the ``reserved`` directory of a repository."""

    genesis_info: dict[str, Any]
    members: list[Member] = field(default_factory=list)
    consensus_leader_order: list[str] = field(default_factory=list)
    version: str = ""


def _member_name(member: Member) -> str:
    try:
        name = member["name"]
    except (KeyError, TypeError):
        raise ValueError(f"member has no name: {member!r}") from None
    if not isinstance(name, str):
        raise ValueError(f"member name is not a string: {name!r}")
    return name


def _load_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def _dump_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def read_reserved_state(path: str | os.PathLike[str]) -> ReservedState:
    """Read the reserved state stored under ``path``.

    Members are returned sorted by name. Raises ``OSError`` when a file
    is missing and ``ValueError`` when a file is malformed.
    """
    reserved = Path(path) / RESERVED_DIRECTORY
    genesis_info = _load_json(reserved / GENESIS_INFO_FILE)

    members = [_load_json(entry) for entry in (reserved / MEMBERS_DIRECTORY).iterdir()]
    members.sort(key=_member_name)

    consensus_leader_order = _load_json(reserved / CONSENSUS_LEADER_ORDER_FILE)
    if not isinstance(consensus_leader_order, list) or not all(
        isinstance(name, str) for name in consensus_leader_order
    ):
        raise ValueError("consensus leader order must be a list of member names")

    version = _load_json(reserved / VERSION_FILE)
    if not isinstance(version, str):
        raise ValueError("version must be a string")

    return ReservedState(
        genesis_info=genesis_info,
        members=members,
        consensus_leader_order=consensus_leader_order,
        version=version,
    )


def write_reserved_state(path: str | os.PathLike[str], state: ReservedState) -> None:
    """Write ``state`` under ``path``, replacing any existing reserved directory."""
    genesis_info = _dump_json(state.genesis_info)
    consensus_leader_order = _dump_json(state.consensus_leader_order)
    version = _dump_json(state.version)
    member_files = [(f"{_member_name(m)}.json", _dump_json(m)) for m in state.members]

    reserved = Path(path) / RESERVED_DIRECTORY
    if reserved.exists():
        shutil.rmtree(reserved)
    reserved.mkdir()

    (reserved / GENESIS_INFO_FILE).write_text(genesis_info, encoding="utf-8")
    (reserved / CONSENSUS_LEADER_ORDER_FILE).write_text(
        consensus_leader_order, encoding="utf-8"
    )
    (reserved / VERSION_FILE).write_text(version, encoding="utf-8")

    members_dir = reserved / MEMBERS_DIRECTORY
    members_dir.mkdir(exist_ok=True)
    for file_name, content in member_files:
        (members_dir / file_name).write_text(content, encoding="utf-8")