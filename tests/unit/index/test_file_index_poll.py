from __future__ import annotations

from pathlib import Path

from dotfile_toggle.config import DEFAULT_EXCLUDE_GLOBS, DEFAULT_FILE_PATTERNS, IndexConfig
from dotfile_toggle.cycles import CycleTable
from dotfile_toggle.index import FileIndex

CONFIG = IndexConfig(patterns=DEFAULT_FILE_PATTERNS, exclude_globs=DEFAULT_EXCLUDE_GLOBS)


def test_poll_turns_disk_changes_into_targeted_updates(tmp_path: Path) -> None:
    keep = tmp_path / ".env"
    edit = tmp_path / ".flags"
    drop = tmp_path / ".config"
    keep.write_text("A=on\n", encoding="utf-8")
    edit.write_text("B=yes\n", encoding="utf-8")
    drop.write_text("C=1\n", encoding="utf-8")
    index = FileIndex(repo_root=tmp_path, index_config=CONFIG, table=CycleTable())
    index.refresh_all()
    kept = index.get(keep)

    edit.write_text("B=no\nEXTRA=true\n", encoding="utf-8")
    drop.unlink()
    (tmp_path / "svc").mkdir()
    (tmp_path / "svc" / ".env.local").write_text("D=enabled\n", encoding="utf-8")
    changes = index.poll()

    reasons = {change.paths[0]: change.reason for change in changes}
    assert reasons == {
        "svc/.env.local": "changed",
        ".flags": "changed",
        ".config": "deleted",
    }
    assert index.get(keep) is kept
    assert index.get(drop) is None
    flags = index.get(edit)
    assert flags is not None
    assert [entry.value for entry in flags.entries] == ["no", "true"]
    assert index.poll() == []


def test_poll_without_changes_is_quiet(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("A=on\n", encoding="utf-8")
    index = FileIndex(repo_root=tmp_path, index_config=CONFIG, table=CycleTable())
    index.refresh_all()

    assert index.poll() == []
