"""Safe in-place value toggling."""

from .engine import ConfirmHandler, IgnoreChecker, ToggleEngine, replace_value_span
from .models import ToggleErrorKind, ToggleOutcome

__all__ = [
    "ConfirmHandler",
    "IgnoreChecker",
    "ToggleEngine",
    "ToggleErrorKind",
    "ToggleOutcome",
    "replace_value_span",
]
