"""Built-in dotfile tools."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from dotfile_toggle.config import ToggleConfig
from dotfile_toggle.index import FileEvent, FileEventKind, IndexChange
from dotfile_toggle.parser import Entry, ParsedFile
from dotfile_toggle.security import relative_display_path, resolve_repo_path
from dotfile_toggle.service import DotfileService
from dotfile_toggle.tools.registry import ToolDispatchError, ToolHandler, ToolRegistry

AUDIT_LOG_MAX_LIMIT = 200


def register_builtin_tools(
    registry: ToolRegistry,
    service: DotfileService,
    read_audit_entries: Callable[[str | None, int, str | None], list[dict[str, object]]],
    reload_config: Callable[[], ToggleConfig],
) -> None:
    """Register the dotfile tool set."""
    registry.register("dotfiles.status", _status_handler(service))
    registry.register("dotfiles.list", _list_handler(service))
    registry.register("dotfiles.get", _get_handler(service))
    registry.register("dotfiles.refresh", _refresh_handler(service))
    registry.register("dotfiles.poll", _poll_handler(service))
    registry.register("dotfiles.event", _event_handler(service))
    registry.register("dotfiles.toggle", _toggle_handler(service, interactive=True))
    registry.register("dotfiles.toggle_silently", _toggle_handler(service, interactive=False))
    registry.register("dotfiles.reconfigure", _reconfigure_handler(service, reload_config))
    registry.register("dotfiles.audit_log", _audit_log_handler(read_audit_entries))


def entry_to_dict(entry: Entry) -> dict[str, object]:
    return {
        "key": entry.key,
        "value": entry.value,
        "line": entry.line_number,
        "value_start": entry.value_start,
        "value_end": entry.value_end,
        "is_toggleable": entry.is_toggleable,
        "cycle": list(entry.matched_cycle) if entry.matched_cycle is not None else None,
    }


def parsed_file_to_dict(parsed: ParsedFile, only_toggleable: bool) -> dict[str, object]:
    entries = parsed.toggleable_entries if only_toggleable else parsed.entries
    return {
        "path": parsed.display_path,
        "entry_count": len(parsed.entries),
        "toggleable_count": len(parsed.toggleable_entries),
        "entries": [entry_to_dict(entry) for entry in entries],
    }


def changes_to_dict(changes: list[IndexChange]) -> dict[str, object]:
    return {
        "changes": [{"paths": list(change.paths), "reason": change.reason} for change in changes],
    }


def _status_handler(service: DotfileService) -> ToolHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        summary = service.summary()
        return {
            "repo_root": str(service.config.repo_root),
            "file_count": summary.file_count,
            "files_with_toggleable": summary.files_with_toggleable,
            "toggleable_count": summary.toggleable_count,
            "failures": service.index.failures(),
            "effective_config": service.config.to_public_dict(),
        }

    return handler


def _list_handler(service: DotfileService) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        only_toggleable = _optional_bool(arguments, "only_toggleable", "dotfiles.list", True)
        files = service.get_parsed_files()
        if only_toggleable:
            files = [item for item in files if item.toggleable_entries]
        return {"files": [parsed_file_to_dict(item, only_toggleable) for item in files]}

    return handler


def _get_handler(service: DotfileService) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        resolved = _resolve_path_argument(service, arguments, "dotfiles.get")
        parsed = service.get_parsed_file(resolved)
        if parsed is None:
            return {
                "path": relative_display_path(service.config.repo_root, resolved),
                "indexed": False,
            }
        payload = parsed_file_to_dict(parsed, only_toggleable=False)
        payload["indexed"] = True
        return payload

    return handler


def _refresh_handler(service: DotfileService) -> ToolHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        change = service.refresh_all()
        return {"file_count": len(change.paths), "paths": list(change.paths)}

    return handler


def _poll_handler(service: DotfileService) -> ToolHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        return changes_to_dict(service.poll())

    return handler


def _event_handler(service: DotfileService) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        kind_value = arguments.get("kind")
        kinds = {kind.value: kind for kind in FileEventKind}
        if not isinstance(kind_value, str) or kind_value not in kinds:
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="dotfiles.event kind must be one of: created, changed, deleted.",
            )
        resolved = _resolve_path_argument(service, arguments, "dotfiles.event")
        return changes_to_dict(service.deliver(FileEvent(kind=kinds[kind_value], path=resolved)))

    return handler


def _toggle_handler(service: DotfileService, interactive: bool) -> ToolHandler:
    tool_name = "dotfiles.toggle" if interactive else "dotfiles.toggle_silently"

    def handler(arguments: dict[str, object]) -> dict[str, object]:
        resolved = _resolve_path_argument(service, arguments, tool_name)
        line_value = arguments.get("line")
        if isinstance(line_value, bool) or not isinstance(line_value, int) or line_value < 0:
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message=f"{tool_name} line must be a non-negative integer.",
            )
        confirm_unignored = _optional_bool(arguments, "confirm_unignored", tool_name, False)

        def confirm(_: Path) -> bool:
            return confirm_unignored

        if interactive:
            outcome = service.toggle(resolved, line_value, confirm=confirm)
        else:
            outcome = service.toggle_silently(resolved, line_value, confirm=confirm)
        payload = outcome.to_dict()
        payload["path"] = relative_display_path(service.config.repo_root, resolved)
        payload["line"] = line_value
        if interactive and outcome.success:
            payload["reveal"] = {"path": payload["path"], "line": line_value}
        return payload

    return handler


def _reconfigure_handler(
    service: DotfileService, reload_config: Callable[[], ToggleConfig]
) -> ToolHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        change = service.reconfigure(reload_config())
        return {
            "file_count": len(change.paths),
            "effective_config": service.config.to_public_dict(),
        }

    return handler


def _audit_log_handler(
    read_audit_entries: Callable[[str | None, int, str | None], list[dict[str, object]]],
) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        since = arguments.get("since")
        limit = arguments.get("limit", 50)
        tool = arguments.get("tool")
        if since is not None and not isinstance(since, str):
            raise ToolDispatchError(
                code="INVALID_PARAMS", message="dotfiles.audit_log since must be a string."
            )
        if tool is not None and not isinstance(tool, str):
            raise ToolDispatchError(
                code="INVALID_PARAMS", message="dotfiles.audit_log tool must be a string."
            )
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="dotfiles.audit_log limit must be a positive integer.",
            )
        return {"entries": read_audit_entries(since, min(limit, AUDIT_LOG_MAX_LIMIT), tool)}

    return handler


def _resolve_path_argument(
    service: DotfileService, arguments: dict[str, object], tool_name: str
) -> Path:
    path_value = arguments.get("path")
    if not isinstance(path_value, str) or not path_value:
        raise ToolDispatchError(
            code="INVALID_PARAMS",
            message=f"{tool_name} path must be a non-empty string.",
        )
    return resolve_repo_path(repo_root=service.config.repo_root, candidate=path_value)


def _optional_bool(
    arguments: dict[str, object], name: str, tool_name: str, default: bool
) -> bool:
    value = arguments.get(name, default)
    if not isinstance(value, bool):
        raise ToolDispatchError(
            code="INVALID_PARAMS",
            message=f"{tool_name} {name} must be a boolean.",
        )
    return value
