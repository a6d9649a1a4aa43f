"""Path sandboxing and read limits."""

from .paths import PathBlockedError, relative_display_path, resolve_repo_path
from .policy import PolicyBlockedError, SecurityLimits, enforce_file_size_limit

__all__ = [
    "PathBlockedError",
    "PolicyBlockedError",
    "SecurityLimits",
    "enforce_file_size_limit",
    "relative_display_path",
    "resolve_repo_path",
]
