"""Structured JSONL audit log utilities."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path


@dataclass(slots=True, frozen=True)
class AuditEvent:
    """Sanitized record of one request or index failure."""

    timestamp: str
    request_id: str
    tool: str
    ok: bool
    blocked: bool
    error_code: str | None
    metadata: dict[str, object]


def utc_timestamp() -> str:
    """Return an ISO-8601 UTC timestamp."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sanitize_arguments(arguments: dict[str, object]) -> dict[str, object]:
    """Sanitize arguments so file contents and values never reach the log."""
    sanitized: dict[str, object] = {}
    for key in sorted(arguments.keys()):
        value = arguments[key]
        if key in {"path", "kind"} and isinstance(value, str):
            sanitized[key] = value
            continue
        if key in {"line", "limit"} and isinstance(value, int) and not isinstance(value, bool):
            sanitized[key] = value
            continue
        if key in {"only_toggleable", "confirm_unignored"} and isinstance(value, bool):
            sanitized[key] = value
            continue
        if isinstance(value, (int, float, bool)) or value is None:
            sanitized[key] = value
            continue
        if isinstance(value, str):
            sanitized[f"{key}_present"] = True
            sanitized[f"{key}_length"] = len(value)
            continue
        if isinstance(value, list):
            sanitized[f"{key}_type"] = "list"
            sanitized[f"{key}_length"] = len(value)
            continue
        if isinstance(value, dict):
            sanitized[f"{key}_type"] = "dict"
            sanitized[f"{key}_keys"] = sorted(str(k) for k in value.keys())
            continue
        sanitized[f"{key}_type"] = type(value).__name__
    return sanitized


class JsonlAuditLogger:
    """Append-only JSONL audit logger and bounded reader."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        """Return on-disk JSONL path."""
        return self._path

    def append(self, event: AuditEvent) -> None:
        """Append a sanitized event as one JSON object per line."""
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(asdict(event), sort_keys=True))
            handle.write("\n")

    def read(
        self,
        since: str | None = None,
        limit: int = 50,
        tool: str | None = None,
    ) -> list[dict[str, object]]:
        """Read recent events, optionally filtered by timestamp and tool name."""
        if limit < 1:
            return []
        entries: list[dict[str, object]] = []
        if not self._path.exists():
            return entries
        with self._path.open("r", encoding="utf-8") as handle:
            for line in handle:
                stripped = line.strip()
                if not stripped:
                    continue
                try:
                    record = json.loads(stripped)
                except json.JSONDecodeError:
                    continue
                if since is not None:
                    ts = record.get("timestamp")
                    if not isinstance(ts, str) or ts < since:
                        continue
                if tool is not None and record.get("tool") != tool:
                    continue
                entries.append(record)
        if len(entries) <= limit:
            return entries
        return entries[-limit:]


def index_failure_event(sequence: int, path: str, error: BaseException) -> AuditEvent:
    """Build the event recorded when an indexed file cannot be read or decoded."""
    return AuditEvent(
        timestamp=utc_timestamp(),
        request_id=f"index-{sequence:06d}",
        tool="index.parse",
        ok=False,
        blocked=False,
        error_code="PARSE_IO_ERROR",
        metadata={"path": path, "error_type": type(error).__name__},
    )
