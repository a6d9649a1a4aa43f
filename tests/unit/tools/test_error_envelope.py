from __future__ import annotations

import json
from pathlib import Path

from dotfile_toggle.config import CliOverrides
from dotfile_toggle.server import create_server


def _server(root: Path):
    return create_server(repo_root=str(root), cli_overrides=CliOverrides(warn_unignored=False))


def test_malformed_json_returns_invalid_json_error(tmp_path: Path) -> None:
    server = _server(tmp_path)

    response = server.handle_json_line("{not-json")

    assert response["ok"] is False
    assert response["error"] == {
        "code": "INVALID_JSON",
        "message": "Request must be valid JSON.",
    }
    assert str(response["request_id"]).startswith("req-")


def test_unknown_tool_returns_explicit_error(tmp_path: Path) -> None:
    server = _server(tmp_path)

    response = server.handle_payload(
        {"id": "abc-123", "method": "dotfiles.unknown", "params": {"k": "v"}}
    )

    assert response["request_id"] == "abc-123"
    assert response["error"] == {
        "code": "UNKNOWN_TOOL",
        "message": "Unknown tool: dotfiles.unknown",
    }


def test_tools_call_unwraps_name_and_arguments(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("A=yes\n", encoding="utf-8")
    server = _server(tmp_path)

    response = server.handle_payload(
        {
            "id": 3,
            "method": "tools/call",
            "params": {"name": "dotfiles.toggle_silently", "arguments": {"path": ".env", "line": 0}},
        }
    )

    assert response["request_id"] == "3"
    assert response["result"]["new_value"] == "no"


def test_invalid_tools_call_params_returns_invalid_params_error(tmp_path: Path) -> None:
    server = _server(tmp_path)
    payload = {
        "id": 7,
        "method": "tools/call",
        "params": {"name": "dotfiles.status", "arguments": []},
    }

    response = server.handle_payload(json.loads(json.dumps(payload)))

    assert response["request_id"] == "7"
    assert response["error"] == {
        "code": "INVALID_PARAMS",
        "message": "tools/call params.arguments must be an object.",
    }


def test_non_object_request_and_params(tmp_path: Path) -> None:
    server = _server(tmp_path)

    not_object = server.handle_payload(["dotfiles.status"])
    bad_params = server.handle_payload({"id": "p", "method": "dotfiles.status", "params": []})

    assert not_object["error"]["code"] == "INVALID_REQUEST"
    assert bad_params["error"]["code"] == "INVALID_PARAMS"


def test_oversized_response_is_blocked(tmp_path: Path) -> None:
    lines = "".join(f"FLAG_{index}=true\n" for index in range(400))
    (tmp_path / ".env").write_text(lines, encoding="utf-8")
    server = create_server(
        repo_root=str(tmp_path),
        cli_overrides=CliOverrides(max_total_bytes_per_response=2048, warn_unignored=False),
    )

    response = server.handle_payload({"id": "big", "method": "dotfiles.list", "params": {}})

    assert response["blocked"] is True
    assert response["result"]["reason"] == "Response exceeds max_total_bytes_per_response limit."
