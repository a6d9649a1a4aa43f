"""Deterministic dotfile discovery and change detection between scans."""

from __future__ import annotations

import fnmatch
import hashlib
import os
import time
from dataclasses import asdict, dataclass
from pathlib import Path

from dotfile_toggle.config import IndexConfig
from dotfile_toggle.index.models import FileRecord, IndexDelta

_BINARY_SNIFF_BYTES = 4096


@dataclass(slots=True, frozen=True)
class DiscoveryProfile:
    """Counters for one discovery pass."""

    total_candidates: int
    excluded_by_glob: int
    excluded_by_pattern: int
    unchanged_reused: int
    binary_excluded: int
    hashed_files: int
    total_seconds: float


@dataclass(slots=True, frozen=True)
class _CandidateFile:
    """Candidate dotfile found during traversal."""

    relative_path: str
    full_path: Path
    size: int
    mtime_ns: int


def discover_dotfiles(
    repo_root: Path,
    config: IndexConfig,
    previous_records: dict[str, FileRecord] | None = None,
    profile: dict[str, object] | None = None,
) -> list[FileRecord]:
    """Discover text files matching the configured patterns, sorted by path.

    Content hashes from ``previous_records`` are reused when size and mtime
    are unchanged.
    """
    started = time.perf_counter()
    root = repo_root.resolve()
    counters = {"total": 0, "glob": 0, "pattern": 0}
    candidates = _discover_candidates(root, config, counters)
    candidates.sort(key=lambda item: item.relative_path)

    records: list[FileRecord] = []
    prior = previous_records or {}
    reused = 0
    binary_excluded = 0
    hashed_files = 0
    for candidate in candidates:
        previous = prior.get(candidate.relative_path)
        if (
            previous is not None
            and previous.size == candidate.size
            and previous.mtime_ns == candidate.mtime_ns
        ):
            records.append(previous)
            reused += 1
            continue
        try:
            if is_binary_file(candidate.full_path):
                binary_excluded += 1
                continue
            content_hash = sha256_file(candidate.full_path)
        except OSError:
            continue
        hashed_files += 1
        records.append(
            FileRecord(
                path=candidate.relative_path,
                size=candidate.size,
                mtime_ns=candidate.mtime_ns,
                content_hash=content_hash,
            )
        )

    if profile is not None:
        payload = DiscoveryProfile(
            total_candidates=counters["total"],
            excluded_by_glob=counters["glob"],
            excluded_by_pattern=counters["pattern"],
            unchanged_reused=reused,
            binary_excluded=binary_excluded,
            hashed_files=hashed_files,
            total_seconds=time.perf_counter() - started,
        )
        profile.update(asdict(payload))
    return records


def detect_index_delta(
    previous: dict[str, FileRecord],
    current_records: list[FileRecord],
) -> IndexDelta:
    """Compute deterministic added/updated/unchanged/removed sets."""
    current = record_map(current_records)
    previous_paths = set(previous.keys())
    current_paths = set(current.keys())

    added = sorted(current_paths - previous_paths)
    removed = sorted(previous_paths - current_paths)

    updated: list[str] = []
    unchanged: list[str] = []
    for path in sorted(previous_paths & current_paths):
        if previous[path] == current[path]:
            unchanged.append(path)
            continue
        updated.append(path)

    return IndexDelta(
        added=tuple(added),
        updated=tuple(updated),
        unchanged=tuple(unchanged),
        removed=tuple(removed),
    )


def record_map(records: list[FileRecord]) -> dict[str, FileRecord]:
    """Map records by relative path."""
    return {record.path: record for record in records}


def should_exclude(relative_path: str, exclude_globs: tuple[str, ...]) -> bool:
    """Return True when a path matches configured ignore globs."""
    anchored = f"/{relative_path}"
    return any(
        fnmatch.fnmatch(relative_path, pattern) or fnmatch.fnmatch(anchored, pattern)
        for pattern in exclude_globs
    )


def matches_patterns(relative_path: str, patterns: tuple[str, ...]) -> bool:
    """Return True when a file path matches one of the dotfile patterns.

    The last pattern segment must also match the file name, so ``**/.env*``
    selects ``.env.local`` but not files inside a ``.envs/`` directory.
    """
    anchored = f"/{relative_path}"
    name = relative_path.rsplit("/", 1)[-1]
    for pattern in patterns:
        if not (fnmatch.fnmatch(relative_path, pattern) or fnmatch.fnmatch(anchored, pattern)):
            continue
        if fnmatch.fnmatch(name, pattern.rsplit("/", 1)[-1]):
            return True
    return False


def is_indexable(relative_path: str, config: IndexConfig) -> bool:
    """Return True when discovery would consider this relative path."""
    if should_exclude(relative_path, config.exclude_globs):
        return False
    return matches_patterns(relative_path, config.patterns)


def _excluded_dir_names(exclude_globs: tuple[str, ...]) -> set[str]:
    """Extract directory-name prunes from **/name/** glob patterns."""
    output: set[str] = set()
    for pattern in exclude_globs:
        if not pattern.startswith("**/") or not pattern.endswith("/**"):
            continue
        name = pattern[3:-3].strip("/")
        if not name:
            continue
        if any(char in name for char in "*?[]{}"):
            continue
        output.add(name)
    return output


def _discover_candidates(
    root: Path,
    config: IndexConfig,
    counters: dict[str, int],
) -> list[_CandidateFile]:
    """Walk the tree with pruning for excluded directories."""
    excluded_dir_names = _excluded_dir_names(config.exclude_globs)
    candidates: list[_CandidateFile] = []
    stack: list[Path] = [root]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                ordered_entries = sorted(entries, key=lambda item: item.name)
        except OSError:
            continue
        for entry in reversed(ordered_entries):
            full_path = Path(entry.path)
            relative = full_path.relative_to(root).as_posix()
            if entry.is_dir(follow_symlinks=False):
                if entry.name in excluded_dir_names and should_exclude(
                    f"{relative}/", config.exclude_globs
                ):
                    continue
                stack.append(full_path)
                continue
            if not entry.is_file(follow_symlinks=False):
                continue
            counters["total"] += 1
            if should_exclude(relative, config.exclude_globs):
                counters["glob"] += 1
                continue
            if not matches_patterns(relative, config.patterns):
                counters["pattern"] += 1
                continue
            try:
                stat = entry.stat(follow_symlinks=False)
            except OSError:
                continue
            candidates.append(
                _CandidateFile(
                    relative_path=relative,
                    full_path=full_path,
                    size=stat.st_size,
                    mtime_ns=stat.st_mtime_ns,
                )
            )
    return candidates


def sha256_file(path: Path) -> str:
    """Compute SHA-256 hash in chunked reads."""
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        while True:
            chunk = handle.read(1024 * 128)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()


def is_binary_file(path: Path) -> bool:
    """Sniff the head of a file for NUL bytes.

    Undecodable text is left to the parser so it is reported as a failure.
    """
    with path.open("rb") as handle:
        sample = handle.read(_BINARY_SNIFF_BYTES)
    return b"\x00" in sample
