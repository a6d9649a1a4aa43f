"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from dotfile_toggle.cycles import CycleTable
from dotfile_toggle.security import SecurityLimits

CONFIG_FILE_NAME = "dotfile_toggle.toml"

MAX_FILE_BYTES_CAP = 16 * 1024 * 1024
MAX_TOTAL_BYTES_PER_RESPONSE_CAP = 4 * 1024 * 1024

DEFAULT_FILE_PATTERNS = ("**/.env*", "**/.flags", "**/.config")
DEFAULT_EXCLUDE_GLOBS = (
    "**/.git/**",
    "**/node_modules/**",
    "**/__pycache__/**",
    "**/.venv/**",
)


@dataclass(slots=True, frozen=True)
class IndexConfig:
    """Which files under the root are dotfiles."""

    patterns: tuple[str, ...]
    exclude_globs: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class ToggleSettings:
    """Cycle table and toggle safety switches."""

    table: CycleTable
    warn_unignored: bool


@dataclass(slots=True, frozen=True)
class ToggleConfig:
    """Fully merged configuration."""

    repo_root: Path
    data_dir: Path
    limits: SecurityLimits
    index: IndexConfig
    toggle: ToggleSettings

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot for tool responses."""
        return {
            "repo_root": str(self.repo_root),
            "data_dir": str(self.data_dir),
            "limits": {
                "max_file_bytes": self.limits.max_file_bytes,
                "max_total_bytes_per_response": self.limits.max_total_bytes_per_response,
            },
            "files": {
                "patterns": list(self.index.patterns),
                "exclude_globs": list(self.index.exclude_globs),
            },
            "toggle": {
                "values": self.toggle.table.to_lists(),
                "warn_unignored": self.toggle.warn_unignored,
            },
        }


@dataclass(slots=True, frozen=True)
class CliOverrides:
    """Optional startup overrides applied at highest precedence."""

    data_dir: Path | None = None
    max_file_bytes: int | None = None
    max_total_bytes_per_response: int | None = None
    warn_unignored: bool | None = None


def default_config(repo_root: Path) -> ToggleConfig:
    """Build default config for a given project root."""
    resolved_root = repo_root.resolve()
    return ToggleConfig(
        repo_root=resolved_root,
        data_dir=resolved_root / ".dotfile_toggle",
        limits=SecurityLimits(),
        index=IndexConfig(
            patterns=DEFAULT_FILE_PATTERNS,
            exclude_globs=DEFAULT_EXCLUDE_GLOBS,
        ),
        toggle=ToggleSettings(table=CycleTable(), warn_unignored=True),
    )


def load_repo_config_file(repo_root: Path) -> dict[str, object]:
    """Load optional dotfile_toggle.toml from the root."""
    config_path = repo_root / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def _tuple_of_strings(value: object, section: str, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Config field '{section}.{field}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"Config field '{section}.{field}' must contain only strings.")
        output.append(item)
    return tuple(output)


def _cycle_table(value: object) -> CycleTable:
    if not isinstance(value, list):
        raise ValueError("Config field 'toggle.values' must be a list of lists of strings.")
    try:
        return CycleTable.from_lists(value)
    except ValueError as error:
        raise ValueError(f"Config field 'toggle.values': {error}") from error


def merge_config(
    base: ToggleConfig, repo_payload: dict[str, object], overrides: CliOverrides
) -> ToggleConfig:
    """Merge defaults, repo config, then CLI/startup overrides."""
    limits_payload = _get_table(repo_payload, "limits")
    files_payload = _get_table(repo_payload, "files")
    toggle_payload = _get_table(repo_payload, "toggle")

    max_file_bytes = _optional_positive_int_with_cap(
        limits_payload.get("max_file_bytes"),
        "limits.max_file_bytes",
        base.limits.max_file_bytes,
        MAX_FILE_BYTES_CAP,
    )
    max_total_bytes_per_response = _optional_positive_int_with_cap(
        limits_payload.get("max_total_bytes_per_response"),
        "limits.max_total_bytes_per_response",
        base.limits.max_total_bytes_per_response,
        MAX_TOTAL_BYTES_PER_RESPONSE_CAP,
    )

    patterns = base.index.patterns
    if "patterns" in files_payload:
        patterns = _tuple_of_strings(files_payload["patterns"], "files", "patterns")
    exclude_globs = base.index.exclude_globs
    if "exclude_globs" in files_payload:
        exclude_globs = _tuple_of_strings(files_payload["exclude_globs"], "files", "exclude_globs")

    table = base.toggle.table
    if "values" in toggle_payload:
        table = _cycle_table(toggle_payload["values"])

    warn_unignored = base.toggle.warn_unignored
    if "warn_unignored" in toggle_payload:
        raw_warn = toggle_payload["warn_unignored"]
        if not isinstance(raw_warn, bool):
            raise ValueError("Config field 'toggle.warn_unignored' must be a boolean.")
        warn_unignored = raw_warn

    merged = ToggleConfig(
        repo_root=base.repo_root,
        data_dir=base.data_dir,
        limits=SecurityLimits(
            max_file_bytes=max_file_bytes,
            max_total_bytes_per_response=max_total_bytes_per_response,
        ),
        index=IndexConfig(patterns=patterns, exclude_globs=exclude_globs),
        toggle=ToggleSettings(table=table, warn_unignored=warn_unignored),
    )
    return apply_cli_overrides(merged, overrides)


def apply_cli_overrides(config: ToggleConfig, overrides: CliOverrides) -> ToggleConfig:
    """Apply startup overrides at highest precedence."""
    limits = SecurityLimits(
        max_file_bytes=_optional_positive_int_with_cap(
            overrides.max_file_bytes,
            "overrides.max_file_bytes",
            config.limits.max_file_bytes,
            MAX_FILE_BYTES_CAP,
        ),
        max_total_bytes_per_response=_optional_positive_int_with_cap(
            overrides.max_total_bytes_per_response,
            "overrides.max_total_bytes_per_response",
            config.limits.max_total_bytes_per_response,
            MAX_TOTAL_BYTES_PER_RESPONSE_CAP,
        ),
    )
    toggle = ToggleSettings(
        table=config.toggle.table,
        warn_unignored=(
            overrides.warn_unignored
            if overrides.warn_unignored is not None
            else config.toggle.warn_unignored
        ),
    )
    data_dir = overrides.data_dir or config.data_dir
    return ToggleConfig(
        repo_root=config.repo_root,
        data_dir=data_dir.resolve(),
        limits=limits,
        index=config.index,
        toggle=toggle,
    )


def load_effective_config(repo_root: Path, overrides: CliOverrides | None = None) -> ToggleConfig:
    """Load effective config using merge order defaults -> repo config -> overrides."""
    resolved_root = repo_root.resolve()
    base = default_config(resolved_root)
    payload = load_repo_config_file(resolved_root)
    return merge_config(base, payload, overrides or CliOverrides())


def _optional_positive_int_with_cap(
    value: object,
    name: str,
    default: int,
    cap: int | None,
) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Config field '{name}' must be a positive integer.")
    if cap is not None and value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value
