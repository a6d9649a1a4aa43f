from __future__ import annotations

from pathlib import Path

from dotfile_toggle.config import DEFAULT_EXCLUDE_GLOBS, DEFAULT_FILE_PATTERNS, IndexConfig
from dotfile_toggle.index import detect_index_delta, discover_dotfiles, matches_patterns, record_map

CONFIG = IndexConfig(patterns=DEFAULT_FILE_PATTERNS, exclude_globs=DEFAULT_EXCLUDE_GLOBS)


def _write(root: Path, rel: str, text: str = "A=1\n") -> Path:
    target = root / rel
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
    return target


def test_default_patterns_select_dotfiles_sorted(tmp_path: Path) -> None:
    _write(tmp_path, ".env")
    _write(tmp_path, ".env.local")
    _write(tmp_path, "api/.flags")
    _write(tmp_path, "api/.config")
    _write(tmp_path, "api/settings.py")
    _write(tmp_path, ".envs/notes.txt")
    _write(tmp_path, "node_modules/pkg/.env")
    _write(tmp_path, ".git/.config")

    records = discover_dotfiles(tmp_path, CONFIG)

    assert [record.path for record in records] == [
        ".env",
        ".env.local",
        "api/.config",
        "api/.flags",
    ]


def test_binary_files_are_skipped(tmp_path: Path) -> None:
    (tmp_path / ".flags").write_bytes(b"A=1\x00\x01")

    assert discover_dotfiles(tmp_path, CONFIG) == []


def test_matches_patterns_checks_file_name_segment() -> None:
    assert matches_patterns(".env", ("**/.env*",))
    assert matches_patterns("deep/nested/.env.production", ("**/.env*",))
    assert not matches_patterns(".envs/file", ("**/.env*",))
    assert not matches_patterns("my.env", ("**/.env*",))
    assert matches_patterns("conf/app.flags", ("conf/*.flags",))


def test_unchanged_files_reuse_hash_and_delta_tracks_changes(tmp_path: Path) -> None:
    keep = _write(tmp_path, ".env", "A=1\n")
    edit = _write(tmp_path, "svc/.env", "B=on\n")
    drop = _write(tmp_path, ".flags", "C=yes\n")
    profile: dict[str, object] = {}
    before = record_map(discover_dotfiles(tmp_path, CONFIG))

    edit.write_text("B=off and longer\n", encoding="utf-8")
    drop.unlink()
    _write(tmp_path, "new/.config", "D=true\n")
    after = discover_dotfiles(tmp_path, CONFIG, previous_records=before, profile=profile)
    delta = detect_index_delta(previous=before, current_records=after)

    assert keep.exists()
    assert delta.added == ("new/.config",)
    assert delta.updated == ("svc/.env",)
    assert delta.unchanged == (".env",)
    assert delta.removed == (".flags",)
    assert profile["unchanged_reused"] == 1
    assert profile["hashed_files"] == 2


def test_undecodable_text_is_still_discovered(tmp_path: Path) -> None:
    (tmp_path / ".env").write_bytes(b"A=caf\xe9\n")

    assert [record.path for record in discover_dotfiles(tmp_path, CONFIG)] == [".env"]
