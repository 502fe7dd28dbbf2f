"""Git-backed storage for ledger data: raw repository access, reserved state and a git daemon helper."""

__version__ = "0.1.0"

__all__ = ["gitcmd", "raw", "reserved_state", "server", "testing", "types"]