"""Toggle orchestration: fresh re-parse, locate, validate, edit, persist."""

from __future__ import annotations

import os
import stat
from collections.abc import Callable
from pathlib import Path

from dotfile_toggle.cycles import CycleTable, cycle_index, next_value
from dotfile_toggle.parser import UTF8_BOM, Entry, decode_dotfile, parse_text
from dotfile_toggle.security import (
    PolicyBlockedError,
    SecurityLimits,
    enforce_file_size_limit,
    relative_display_path,
)
from dotfile_toggle.toggle.models import ToggleErrorKind, ToggleOutcome

IgnoreChecker = Callable[[Path], bool]
ConfirmHandler = Callable[[Path], bool]


class ToggleEngine:
    """Runs toggle requests against files on disk.

    Every request re-reads and re-parses its target immediately before the
    edit; cached index data is never used to compute offsets.
    """

    def __init__(
        self,
        repo_root: Path,
        table: CycleTable,
        limits: SecurityLimits | None = None,
        warn_unignored: bool = True,
        is_ignored: IgnoreChecker | None = None,
        confirm: ConfirmHandler | None = None,
        on_persisted: Callable[[Path], object] | None = None,
        reveal: Callable[[Path, int], None] | None = None,
        is_target: Callable[[Path], bool] | None = None,
    ) -> None:
        self._repo_root = repo_root.resolve()
        self._table = table
        self._limits = limits or SecurityLimits()
        self._warn_unignored = warn_unignored
        self._is_ignored = is_ignored
        self._confirm = confirm
        self._on_persisted = on_persisted
        self._reveal = reveal
        self._is_target = is_target
        self._acknowledged: set[str] = set()

    def reconfigure(
        self,
        table: CycleTable,
        warn_unignored: bool,
        limits: SecurityLimits | None = None,
    ) -> None:
        """Use a new cycle table and limits for subsequent requests."""
        self._table = table
        self._warn_unignored = warn_unignored
        if limits is not None:
            self._limits = limits

    def toggle(
        self,
        path: Path | str,
        line_number: int,
        confirm: ConfirmHandler | None = None,
    ) -> ToggleOutcome:
        """Toggle the value on a line and bring the edit into view."""
        target = self._target(path)
        outcome = self._run(target, line_number, confirm)
        if outcome.success and self._reveal is not None:
            self._reveal(target, line_number)
        return outcome

    def toggle_silently(
        self,
        path: Path | str,
        line_number: int,
        confirm: ConfirmHandler | None = None,
    ) -> ToggleOutcome:
        """Toggle the value on a line without any presentation side effect."""
        return self._run(self._target(path), line_number, confirm)

    def is_acknowledged(self, path: Path | str) -> bool:
        return str(self._target(path)) in self._acknowledged

    def clear_acknowledged(self) -> None:
        """Forget which unignored files were already confirmed this session."""
        self._acknowledged.clear()

    def _target(self, path: Path | str) -> Path:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self._repo_root / candidate
        return candidate.resolve(strict=False)

    def _run(
        self,
        target: Path,
        line_number: int,
        confirm: ConfirmHandler | None,
    ) -> ToggleOutcome:
        if self._is_target is not None and not self._is_target(target):
            return ToggleOutcome.rejected(
                ToggleErrorKind.NOT_TOGGLEABLE,
                f"{self._display(target)} is not a configured dotfile",
            )
        cancelled = self._check_unignored(target, confirm or self._confirm)
        if cancelled is not None:
            return cancelled

        try:
            enforce_file_size_limit(target, self._limits)
            data = target.read_bytes()
            text, has_bom = decode_dotfile(data)
        except PolicyBlockedError as error:
            return ToggleOutcome.rejected(ToggleErrorKind.PARSE_IO_ERROR, error.reason)
        except (OSError, UnicodeDecodeError) as error:
            return ToggleOutcome.rejected(
                ToggleErrorKind.PARSE_IO_ERROR,
                f"Could not read {self._display(target)}: {type(error).__name__}",
            )

        parsed = parse_text(text, self._table, path=target, display_path=self._display(target))
        entry = parsed.entry_at(line_number)
        if entry is None:
            return ToggleOutcome.rejected(
                ToggleErrorKind.NO_ENTRY_AT_LINE,
                f"No entry found at line {line_number + 1}",
            )
        if not entry.is_toggleable or entry.matched_cycle is None:
            return ToggleOutcome.rejected(
                ToggleErrorKind.NOT_TOGGLEABLE,
                f'Value "{entry.value}" is not toggleable',
            )
        if cycle_index(entry.value, entry.matched_cycle) is None:
            return ToggleOutcome.rejected(
                ToggleErrorKind.NOT_TOGGLEABLE,
                f'Value "{entry.value}" is not a member of its cycle',
            )

        new_value = next_value(entry.value, entry.matched_cycle)
        edited = replace_value_span(text, entry, new_value)
        try:
            _atomic_write_text(target, edited, has_bom)
        except OSError as error:
            return ToggleOutcome.rejected(
                ToggleErrorKind.PERSIST_FAILURE,
                f"Could not write {self._display(target)}: {type(error).__name__}",
            )

        if self._on_persisted is not None:
            try:
                self._on_persisted(target)
            except Exception as error:
                return ToggleOutcome.succeeded(
                    new_value,
                    message=f"Saved, but the index update failed: {type(error).__name__}",
                )
        return ToggleOutcome.succeeded(new_value)

    def _check_unignored(
        self,
        target: Path,
        confirm: ConfirmHandler | None,
    ) -> ToggleOutcome | None:
        if not self._warn_unignored or self._is_ignored is None:
            return None
        key = str(target)
        if key in self._acknowledged:
            return None
        if self._is_ignored(target):
            return None
        if confirm is None or not confirm(target):
            return ToggleOutcome.rejected(
                ToggleErrorKind.USER_CANCELLED,
                f"{self._display(target)} is not ignored by version control; toggle cancelled",
            )
        self._acknowledged.add(key)
        return None

    def _display(self, target: Path) -> str:
        return relative_display_path(self._repo_root, target)


def replace_value_span(text: str, entry: Entry, new_value: str) -> str:
    """Replace one entry's value span, leaving every other character untouched.

    Entry offsets count characters of the line with carriage returns removed;
    they are mapped back onto the stored line before slicing.
    """
    lines = text.split("\n")
    raw_line = lines[entry.line_number]
    positions = [index for index, char in enumerate(raw_line) if char != "\r"]
    if entry.value_start < len(positions):
        raw_start = positions[entry.value_start]
    else:
        raw_start = len(raw_line)
    raw_end = positions[entry.value_end - 1] + 1 if entry.value_end > 0 else raw_start
    lines[entry.line_number] = raw_line[:raw_start] + new_value + raw_line[raw_end:]
    return "\n".join(lines)


def _atomic_write_text(path: Path, text: str, has_bom: bool) -> None:
    """Write through a sibling temp file and rename it over the target."""
    payload = ((UTF8_BOM if has_bom else "") + text).encode("utf-8")
    tmp = path.with_name(f".{path.name}.toggle.tmp")
    try:
        mode = stat.S_IMODE(path.stat().st_mode)
        with tmp.open("wb") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp, mode)
        tmp.replace(path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise
