"""In-memory index of parsed dotfiles kept current by change messages."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from dotfile_toggle.config import IndexConfig
from dotfile_toggle.cycles import CycleTable
from dotfile_toggle.index.discovery import (
    detect_index_delta,
    discover_dotfiles,
    is_indexable,
    record_map,
)
from dotfile_toggle.index.models import FileEvent, FileEventKind, FileRecord, IndexChange
from dotfile_toggle.logging import AuditEvent, index_failure_event
from dotfile_toggle.parser import ParsedFile, parse_text, read_dotfile
from dotfile_toggle.security import (
    PolicyBlockedError,
    SecurityLimits,
    enforce_file_size_limit,
)

IndexListener = Callable[[IndexChange], None]


class FileIndex:
    """Owns the path -> ParsedFile map for one project root.

    Only this class replaces entries in the map. Readers get immutable
    ParsedFile values, and writers go through the targeted update methods or
    the event queue.
    """

    def __init__(
        self,
        repo_root: Path,
        index_config: IndexConfig,
        table: CycleTable,
        limits: SecurityLimits | None = None,
        audit: Callable[[AuditEvent], None] | None = None,
    ) -> None:
        self._repo_root = repo_root.resolve()
        self._index_config = index_config
        self._table = table
        self._limits = limits or SecurityLimits()
        self._audit = audit
        self._files: dict[str, ParsedFile] = {}
        self._records: dict[str, FileRecord] = {}
        self._failures: dict[str, str] = {}
        self._pending: dict[str, FileEvent] = {}
        self._listeners: list[IndexListener] = []
        self._failure_sequence = 0
        self._closed = False

    @property
    def repo_root(self) -> Path:
        return self._repo_root

    @property
    def table(self) -> CycleTable:
        return self._table

    def refresh_all(self) -> IndexChange:
        """Rescan every configured file and swap in a fresh map."""
        records = discover_dotfiles(
            self._repo_root,
            self._index_config,
            previous_records=self._records,
        )
        files: dict[str, ParsedFile] = {}
        failures: dict[str, str] = {}
        for record in records:
            parsed = self._read_and_parse(record.path, failures)
            if parsed is not None:
                files[record.path] = parsed

        self._files = files
        self._records = record_map(records)
        self._failures = failures
        self._pending.clear()
        self._closed = False
        change = IndexChange(paths=tuple(sorted(files)), reason="refresh")
        self._notify(change)
        return change

    def reconfigure(
        self,
        table: CycleTable,
        index_config: IndexConfig,
        limits: SecurityLimits | None = None,
    ) -> IndexChange:
        """Swap the cycle table, discovery globs and limits, then rebuild everything."""
        self._table = table
        self._index_config = index_config
        if limits is not None:
            self._limits = limits
        self._records = {}
        return self.refresh_all()

    def on_file_created_or_changed(self, path: Path | str) -> IndexChange | None:
        """Re-parse one file and replace its entry."""
        key = self._key(path)
        if key is None:
            return None
        parsed = self._read_and_parse(key, self._failures)
        if parsed is None:
            self._files.pop(key, None)
            self._records.pop(key, None)
        else:
            self._files[key] = parsed
            self._failures.pop(key, None)
        change = IndexChange(paths=(key,), reason="changed")
        self._notify(change)
        return change

    def on_file_deleted(self, path: Path | str) -> IndexChange | None:
        """Drop one file from the index."""
        key = self._key(path)
        if key is None:
            return None
        self._files.pop(key, None)
        self._records.pop(key, None)
        self._failures.pop(key, None)
        change = IndexChange(paths=(key,), reason="deleted")
        self._notify(change)
        return change

    def submit(self, event: FileEvent) -> None:
        """Queue a change message. A later message for the same path supersedes it."""
        key = self._key(event.path)
        if key is None:
            return
        self._pending.pop(key, None)
        self._pending[key] = event

    def drain(self) -> list[IndexChange]:
        """Process queued messages in arrival order, one path at a time."""
        changes: list[IndexChange] = []
        while self._pending:
            key = next(iter(self._pending))
            event = self._pending.pop(key)
            if event.kind is FileEventKind.DELETED:
                change = self.on_file_deleted(key)
            else:
                change = self.on_file_created_or_changed(key)
            if change is not None:
                changes.append(change)
        return changes

    def deliver(self, event: FileEvent) -> list[IndexChange]:
        """Submit one message and process the queue."""
        self.submit(event)
        return self.drain()

    def poll(self) -> list[IndexChange]:
        """Detect on-disk changes since the last scan and apply them as messages."""
        current = discover_dotfiles(
            self._repo_root,
            self._index_config,
            previous_records=self._records,
        )
        delta = detect_index_delta(previous=self._records, current_records=current)
        current_map = record_map(current)
        for rel in delta.added:
            self.submit(FileEvent(kind=FileEventKind.CREATED, path=self._repo_root / rel))
        for rel in delta.updated:
            self.submit(FileEvent(kind=FileEventKind.CHANGED, path=self._repo_root / rel))
        for rel in delta.removed:
            self.submit(FileEvent(kind=FileEventKind.DELETED, path=self._repo_root / rel))
        changes = self.drain()
        # Unreadable files keep their fingerprint so they are retried only after they change.
        for rel in (*delta.added, *delta.updated):
            self._records[rel] = current_map[rel]
        return changes

    def covers(self, path: Path | str) -> bool:
        """Return True when the path is a dotfile this index would track."""
        return self._key(path) is not None

    def get(self, path: Path | str) -> ParsedFile | None:
        """Return the cached parse of one file."""
        key = self._key(path)
        if key is None:
            return None
        return self._files.get(key)

    def get_all(self) -> list[ParsedFile]:
        """Return all parsed files ordered by display path."""
        return [self._files[key] for key in sorted(self._files)]

    def failures(self) -> dict[str, str]:
        """Return display path -> reason for files that could not be read."""
        return dict(sorted(self._failures.items()))

    def subscribe(self, listener: IndexListener) -> Callable[[], None]:
        """Register a change listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        """Tear down the index; later reads see an empty map."""
        self._files = {}
        self._records = {}
        self._failures = {}
        self._pending.clear()
        self._listeners.clear()
        self._closed = True

    def _key(self, path: Path | str) -> str | None:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self._repo_root / candidate
        resolved = candidate.resolve(strict=False)
        if not resolved.is_relative_to(self._repo_root):
            return None
        relative = resolved.relative_to(self._repo_root).as_posix()
        if not is_indexable(relative, self._index_config):
            return None
        return relative

    def _read_and_parse(self, key: str, failures: dict[str, str]) -> ParsedFile | None:
        full_path = self._repo_root / key
        try:
            enforce_file_size_limit(full_path, self._limits)
            text = read_dotfile(full_path)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, PolicyBlockedError) as error:
            failures[key] = _describe_failure(error)
            self._record_failure(key, error)
            return None
        return parse_text(text, self._table, path=full_path, display_path=key)

    def _record_failure(self, key: str, error: BaseException) -> None:
        if self._audit is None:
            return
        self._failure_sequence += 1
        self._audit(index_failure_event(self._failure_sequence, key, error))

    def _notify(self, change: IndexChange) -> None:
        if self._closed:
            return
        for listener in list(self._listeners):
            listener(change)


def _describe_failure(error: BaseException) -> str:
    if isinstance(error, PolicyBlockedError):
        return error.reason
    if isinstance(error, UnicodeDecodeError):
        return "File is not valid UTF-8."
    if isinstance(error, PermissionError):
        return "Permission denied."
    return f"{type(error).__name__}: {error}"
