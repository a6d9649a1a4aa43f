"""Dotfile discovery and the in-memory parsed-file index."""

from .discovery import detect_index_delta, discover_dotfiles, matches_patterns, record_map
from .manager import FileIndex, IndexListener
from .models import FileEvent, FileEventKind, FileRecord, IndexChange, IndexDelta

__all__ = [
    "FileEvent",
    "FileEventKind",
    "FileIndex",
    "FileRecord",
    "IndexChange",
    "IndexDelta",
    "IndexListener",
    "detect_index_delta",
    "discover_dotfiles",
    "matches_patterns",
    "record_map",
]
