from __future__ import annotations

from pathlib import Path

import pytest

from dotfile_toggle.config import CliOverrides, load_effective_config


def _write_config(root: Path, *lines: str) -> None:
    (root / "dotfile_toggle.toml").write_text("\n".join(lines), encoding="utf-8")


@pytest.mark.parametrize(
    ("lines", "match"),
    [
        (('files = "not-a-table"',), "section 'files'"),
        (("[files]", 'patterns = "**/.env"'), "files.patterns"),
        (("[files]", 'exclude_globs = ["ok", 3]'), "files.exclude_globs"),
        (("[toggle]", 'values = "true,false"'), "toggle.values"),
        (("[toggle]", 'values = [["solo"]]'), "at least 2"),
        (("[toggle]", 'warn_unignored = "yes"'), "toggle.warn_unignored"),
        (("[limits]", "max_file_bytes = 0"), "limits.max_file_bytes"),
        (("[limits]", "max_file_bytes = 999999999999"), "must be <="),
    ],
)
def test_invalid_values_name_the_field(tmp_path: Path, lines: tuple[str, ...], match: str) -> None:
    _write_config(tmp_path, *lines)

    with pytest.raises(ValueError, match=match):
        load_effective_config(tmp_path)


def test_invalid_override_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="overrides.max_file_bytes"):
        load_effective_config(tmp_path, CliOverrides(max_file_bytes=-1))
