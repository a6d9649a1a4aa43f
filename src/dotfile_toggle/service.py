"""Service facade owning one index and one toggle engine."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from dotfile_toggle.config import ToggleConfig
from dotfile_toggle.index import FileEvent, FileIndex, IndexChange, IndexListener
from dotfile_toggle.logging import AuditEvent
from dotfile_toggle.parser import ParsedFile
from dotfile_toggle.toggle import ConfirmHandler, IgnoreChecker, ToggleEngine, ToggleOutcome
from dotfile_toggle.vcs import git_check_ignore


@dataclass(slots=True, frozen=True)
class IndexSummary:
    """Counts a status display needs."""

    file_count: int
    files_with_toggleable: int
    toggleable_count: int
    failed_count: int


class DotfileService:
    """Entry point for consumers: queries, toggles, refreshes, reconfiguration."""

    def __init__(
        self,
        config: ToggleConfig,
        is_ignored: IgnoreChecker | None = None,
        confirm: ConfirmHandler | None = None,
        reveal: Callable[[Path, int], None] | None = None,
        audit: Callable[[AuditEvent], None] | None = None,
    ) -> None:
        self._config = config
        self._index = FileIndex(
            repo_root=config.repo_root,
            index_config=config.index,
            table=config.toggle.table,
            limits=config.limits,
            audit=audit,
        )
        if is_ignored is None:
            root = config.repo_root

            def is_ignored(path: Path) -> bool:
                return git_check_ignore(path, cwd=root)

        self._engine = ToggleEngine(
            repo_root=config.repo_root,
            table=config.toggle.table,
            limits=config.limits,
            warn_unignored=config.toggle.warn_unignored,
            is_ignored=is_ignored,
            confirm=confirm,
            on_persisted=self._index.on_file_created_or_changed,
            reveal=reveal,
            is_target=self._index.covers,
        )

    @property
    def config(self) -> ToggleConfig:
        return self._config

    @property
    def index(self) -> FileIndex:
        return self._index

    @property
    def engine(self) -> ToggleEngine:
        return self._engine

    def start(self) -> IndexChange:
        """Run the initial full scan."""
        return self._index.refresh_all()

    def refresh_all(self) -> IndexChange:
        return self._index.refresh_all()

    def reconfigure(self, config: ToggleConfig) -> IndexChange:
        """Adopt a new configuration and rebuild all derived state."""
        if config.repo_root != self._config.repo_root:
            raise ValueError("reconfigure cannot change repo_root.")
        self._config = config
        self._engine.reconfigure(
            config.toggle.table, config.toggle.warn_unignored, limits=config.limits
        )
        return self._index.reconfigure(config.toggle.table, config.index, limits=config.limits)

    def toggle(
        self, path: Path | str, line_number: int, confirm: ConfirmHandler | None = None
    ) -> ToggleOutcome:
        return self._engine.toggle(path, line_number, confirm=confirm)

    def toggle_silently(
        self, path: Path | str, line_number: int, confirm: ConfirmHandler | None = None
    ) -> ToggleOutcome:
        return self._engine.toggle_silently(path, line_number, confirm=confirm)

    def get_parsed_files(self) -> list[ParsedFile]:
        return self._index.get_all()

    def get_parsed_file(self, path: Path | str) -> ParsedFile | None:
        return self._index.get(path)

    def deliver(self, event: FileEvent) -> list[IndexChange]:
        return self._index.deliver(event)

    def poll(self) -> list[IndexChange]:
        return self._index.poll()

    def subscribe(self, listener: IndexListener) -> Callable[[], None]:
        return self._index.subscribe(listener)

    def summary(self) -> IndexSummary:
        files = self._index.get_all()
        with_toggleable = [item for item in files if item.toggleable_entries]
        return IndexSummary(
            file_count=len(files),
            files_with_toggleable=len(with_toggleable),
            toggleable_count=sum(len(item.toggleable_entries) for item in with_toggleable),
            failed_count=len(self._index.failures()),
        )

    def close(self) -> None:
        self._index.close()
