"""Line-oriented KEY=VALUE parsing with exact value spans."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from dotfile_toggle.cycles import CycleGroup, CycleTable

KEY_VALUE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_.-]*)\s*=\s*(.*)$"
)
UTF8_BOM: Final[str] = "\ufeff"


@dataclass(slots=True, frozen=True)
class Entry:
    """One KEY=VALUE line.

    ``value_start`` and ``value_end`` are offsets into the line after carriage
    returns have been removed.
    """

    key: str
    value: str
    line_number: int
    value_start: int
    value_end: int
    is_toggleable: bool
    matched_cycle: CycleGroup | None
    raw_line: str


@dataclass(slots=True, frozen=True)
class ParsedFile:
    """All entries parsed from one file."""

    path: Path
    display_path: str
    entries: tuple[Entry, ...]

    @property
    def toggleable_entries(self) -> tuple[Entry, ...]:
        """Entries whose value belongs to a cycle group, in file order."""
        return tuple(entry for entry in self.entries if entry.is_toggleable)

    def entry_at(self, line_number: int) -> Entry | None:
        """Return the entry on a 0-based line, if any."""
        for entry in self.entries:
            if entry.line_number == line_number:
                return entry
        return None


def parse_line(line_text: str, line_number: int, table: CycleTable) -> Entry | None:
    """Parse one line into an Entry, or None for blanks, comments and non-entries."""
    trimmed_line = line_text.strip()
    if not trimmed_line or trimmed_line.startswith("#"):
        return None

    clean_line = line_text.replace("\r", "")
    match = KEY_VALUE_PATTERN.match(clean_line)
    if match is None:
        return None

    key = match.group(1)
    raw_value = match.group(2)
    value = raw_value.strip()
    value_start = match.start(2) + (len(raw_value) - len(raw_value.lstrip()))
    value_end = value_start + len(value)

    matched_cycle = table.find(value)
    return Entry(
        key=key,
        value=value,
        line_number=line_number,
        value_start=value_start,
        value_end=value_end,
        is_toggleable=matched_cycle is not None,
        matched_cycle=matched_cycle,
        raw_line=line_text,
    )


def parse_text(
    text: str,
    table: CycleTable,
    path: Path,
    display_path: str | None = None,
) -> ParsedFile:
    """Parse full file text. Lines are split on newline only."""
    entries: list[Entry] = []
    for line_number, line in enumerate(text.split("\n")):
        entry = parse_line(line, line_number, table)
        if entry is not None:
            entries.append(entry)
    return ParsedFile(
        path=path,
        display_path=display_path if display_path is not None else path.as_posix(),
        entries=tuple(entries),
    )


def decode_dotfile(data: bytes) -> tuple[str, bool]:
    """Decode UTF-8 bytes without newline translation; report a leading BOM."""
    text = data.decode("utf-8")
    if text.startswith(UTF8_BOM):
        return text[len(UTF8_BOM) :], True
    return text, False


def read_dotfile(path: Path) -> str:
    """Read file text exactly as stored, minus any BOM."""
    text, _ = decode_dotfile(path.read_bytes())
    return text


def parse_file(path: Path, table: CycleTable, root: Path | None = None) -> ParsedFile:
    """Read and parse a file from disk. I/O and decode errors propagate."""
    resolved = path.resolve()
    display_path = resolved.as_posix()
    if root is not None and resolved.is_relative_to(root.resolve()):
        display_path = resolved.relative_to(root.resolve()).as_posix()
    return parse_text(read_dotfile(resolved), table, path=resolved, display_path=display_path)
