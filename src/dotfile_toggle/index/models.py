"""Typed models for index state and change messages."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


@dataclass(slots=True, frozen=True)
class FileRecord:
    """Stat and content fingerprint of one discovered dotfile."""

    path: str
    size: int
    mtime_ns: int
    content_hash: str


@dataclass(slots=True, frozen=True)
class IndexDelta:
    """Deterministic change classification between two scans."""

    added: tuple[str, ...]
    updated: tuple[str, ...]
    unchanged: tuple[str, ...]
    removed: tuple[str, ...]


class FileEventKind(str, Enum):
    """Kinds of filesystem change message."""

    CREATED = "created"
    CHANGED = "changed"
    DELETED = "deleted"


@dataclass(slots=True, frozen=True)
class FileEvent:
    """One filesystem change delivered to the index."""

    kind: FileEventKind
    path: Path


@dataclass(slots=True, frozen=True)
class IndexChange:
    """Payload of an index change notification."""

    paths: tuple[str, ...]
    reason: str
