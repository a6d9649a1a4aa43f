from __future__ import annotations

from pathlib import Path

from dotfile_toggle.cycles import CycleTable
from dotfile_toggle.parser import parse_file, parse_text

TABLE = CycleTable()


def test_parse_text_collects_entries_with_zero_based_lines() -> None:
    text = "DEBUG=true\n# comment\nPORT=8080\n\nexport MODE=prod\n"

    parsed = parse_text(text, TABLE, path=Path("/work/.env"), display_path=".env")

    assert parsed.display_path == ".env"
    assert [(e.key, e.line_number) for e in parsed.entries] == [
        ("DEBUG", 0),
        ("PORT", 2),
        ("MODE", 4),
    ]
    assert [e.key for e in parsed.toggleable_entries] == ["DEBUG", "MODE"]
    assert parsed.entry_at(2) is not None
    assert parsed.entry_at(1) is None


def test_parsing_is_idempotent() -> None:
    text = "A=on\r\nB='off'\r\nC=x\r\n"

    first = parse_text(text, TABLE, path=Path("/work/.flags"))
    second = parse_text(text, TABLE, path=Path("/work/.flags"))

    assert first == second


def test_display_path_defaults_to_path() -> None:
    parsed = parse_text("", TABLE, path=Path("/work/.config"))

    assert parsed.display_path == "/work/.config"
    assert parsed.entries == ()
    assert parsed.toggleable_entries == ()


def test_parse_file_reads_without_newline_translation(tmp_path: Path) -> None:
    target = tmp_path / "svc" / ".env"
    target.parent.mkdir()
    target.write_bytes("\ufeffFLAG=on\r\nOTHER=1\r\n".encode("utf-8"))

    parsed = parse_file(target, TABLE, root=tmp_path)

    assert parsed.display_path == "svc/.env"
    assert parsed.path == target.resolve()
    assert [e.key for e in parsed.entries] == ["FLAG", "OTHER"]
    assert parsed.entries[0].raw_line == "FLAG=on\r"
    assert parsed.entries[1].matched_cycle == ("1", "0")
