"""Find, index and toggle cyclic values in KEY=VALUE dotfiles."""

from .cycles import CycleTable, next_value
from .parser import Entry, ParsedFile, parse_line, parse_text
from .service import DotfileService
from .toggle import ToggleErrorKind, ToggleOutcome

__all__ = [
    "CycleTable",
    "DotfileService",
    "Entry",
    "ParsedFile",
    "ToggleErrorKind",
    "ToggleOutcome",
    "next_value",
    "parse_line",
    "parse_text",
]

__version__ = "0.1.0"
