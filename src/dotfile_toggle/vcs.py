"""Version-control ignore status via ``git check-ignore``."""

from __future__ import annotations

import subprocess
from pathlib import Path


def git_check_ignore(path: Path, cwd: Path | None = None, timeout: float = 5.0) -> bool:
    """Return True when git reports the path as ignored.

    Any git failure counts as "not ignored".
    """
    try:
        completed = subprocess.run(
            ["git", "check-ignore", "-q", str(path)],
            cwd=str(cwd or path.parent),
            capture_output=True,
            check=False,
            timeout=timeout,
        )
    except (OSError, subprocess.SubprocessError):
        return False
    return completed.returncode == 0
