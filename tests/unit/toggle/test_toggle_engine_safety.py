from __future__ import annotations

import os
from pathlib import Path

import pytest

from dotfile_toggle.cycles import CycleTable
from dotfile_toggle.toggle import ToggleEngine, ToggleErrorKind


def test_unignored_file_requires_confirmation(tmp_path: Path) -> None:
    env = tmp_path / ".env"
    env.write_text("A=on\n", encoding="utf-8")
    asked: list[Path] = []

    def decline(path: Path) -> bool:
        asked.append(path)
        return False

    engine = ToggleEngine(
        repo_root=tmp_path,
        table=CycleTable(),
        is_ignored=lambda _: False,
        confirm=decline,
    )

    outcome = engine.toggle(env, 0)

    assert outcome.error_kind is ToggleErrorKind.USER_CANCELLED
    assert asked == [env.resolve()]
    assert env.read_text(encoding="utf-8") == "A=on\n"
    assert engine.is_acknowledged(env) is False


def test_confirmation_is_remembered_per_path(tmp_path: Path) -> None:
    env = tmp_path / ".env"
    env.write_text("A=on\n", encoding="utf-8")
    asked: list[Path] = []

    def accept(path: Path) -> bool:
        asked.append(path)
        return True

    engine = ToggleEngine(
        repo_root=tmp_path,
        table=CycleTable(),
        is_ignored=lambda _: False,
        confirm=accept,
    )

    engine.toggle(env, 0)
    engine.toggle_silently(env, 0)

    assert len(asked) == 1
    assert engine.is_acknowledged(".env") is True
    assert env.read_text(encoding="utf-8") == "A=on\n"

    engine.clear_acknowledged()
    engine.toggle(env, 0)
    assert len(asked) == 2


def test_missing_confirm_handler_cancels(tmp_path: Path) -> None:
    env = tmp_path / ".env"
    env.write_text("A=on\n", encoding="utf-8")
    engine = ToggleEngine(repo_root=tmp_path, table=CycleTable(), is_ignored=lambda _: False)

    outcome = engine.toggle(env, 0)

    assert outcome.error_kind is ToggleErrorKind.USER_CANCELLED
    assert env.read_text(encoding="utf-8") == "A=on\n"


def test_ignored_file_and_disabled_warning_skip_confirmation(tmp_path: Path) -> None:
    env = tmp_path / ".env"
    env.write_text("A=on\n", encoding="utf-8")

    def never(_: Path) -> bool:
        raise AssertionError("confirm must not be called")

    ignored = ToggleEngine(
        repo_root=tmp_path, table=CycleTable(), is_ignored=lambda _: True, confirm=never
    )
    disabled = ToggleEngine(
        repo_root=tmp_path,
        table=CycleTable(),
        warn_unignored=False,
        is_ignored=lambda _: False,
        confirm=never,
    )

    assert ignored.toggle(env, 0).new_value == "off"
    assert disabled.toggle(env, 0).new_value == "on"


def test_per_call_confirm_overrides_default(tmp_path: Path) -> None:
    env = tmp_path / ".env"
    env.write_text("A=on\n", encoding="utf-8")
    engine = ToggleEngine(
        repo_root=tmp_path,
        table=CycleTable(),
        is_ignored=lambda _: False,
        confirm=lambda _: False,
    )

    outcome = engine.toggle(env, 0, confirm=lambda _: True)

    assert outcome.new_value == "off"


def test_interactive_variant_reveals_and_silent_does_not(tmp_path: Path) -> None:
    env = tmp_path / ".env"
    env.write_text("A=on\nB=x\n", encoding="utf-8")
    revealed: list[tuple[Path, int]] = []
    engine = ToggleEngine(
        repo_root=tmp_path,
        table=CycleTable(),
        warn_unignored=False,
        reveal=lambda path, line: revealed.append((path, line)),
    )

    engine.toggle_silently(env, 0)
    engine.toggle(env, 1)
    engine.toggle(env, 0)

    assert revealed == [(env.resolve(), 0)]


@pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="needs POSIX non-root")
def test_persist_failure_leaves_file_intact(tmp_path: Path) -> None:
    folder = tmp_path / "locked"
    folder.mkdir()
    env = folder / ".env"
    env.write_text("A=on\n", encoding="utf-8")
    engine = ToggleEngine(repo_root=tmp_path, table=CycleTable(), warn_unignored=False)
    folder.chmod(0o500)
    try:
        outcome = engine.toggle(env, 0)
    finally:
        folder.chmod(0o700)

    assert outcome.error_kind is ToggleErrorKind.PERSIST_FAILURE
    assert env.read_text(encoding="utf-8") == "A=on\n"
    assert sorted(item.name for item in folder.iterdir()) == [".env"]


def test_file_mode_is_kept(tmp_path: Path) -> None:
    env = tmp_path / ".env"
    env.write_text("A=on\n", encoding="utf-8")
    env.chmod(0o600)
    engine = ToggleEngine(repo_root=tmp_path, table=CycleTable(), warn_unignored=False)

    engine.toggle(env, 0)

    assert env.stat().st_mode & 0o777 == 0o600
