"""Read limits for dotfile parsing."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True, frozen=True)
class SecurityLimits:
    """Runtime limits applied to reads and responses."""

    max_file_bytes: int = 1024 * 1024
    max_total_bytes_per_response: int = 256 * 1024


@dataclass(slots=True, frozen=True)
class PolicyBlockedError(Exception):
    """Raised when a limit blocks an operation."""

    reason: str
    hint: str


def enforce_file_size_limit(resolved_path: Path, limits: SecurityLimits) -> None:
    """Raise PolicyBlockedError when a file exceeds max_file_bytes."""
    if resolved_path.exists() and resolved_path.is_file():
        file_size = resolved_path.stat().st_size
        if file_size > limits.max_file_bytes:
            raise PolicyBlockedError(
                reason="File exceeds max_file_bytes limit.",
                hint="Raise limits.max_file_bytes in dotfile_toggle.toml.",
            )
