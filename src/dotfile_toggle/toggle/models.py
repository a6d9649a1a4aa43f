"""Toggle request outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ToggleErrorKind(str, Enum):
    """Reasons a toggle request did not write anything."""

    PARSE_IO_ERROR = "PARSE_IO_ERROR"
    NO_ENTRY_AT_LINE = "NO_ENTRY_AT_LINE"
    NOT_TOGGLEABLE = "NOT_TOGGLEABLE"
    USER_CANCELLED = "USER_CANCELLED"
    PERSIST_FAILURE = "PERSIST_FAILURE"


@dataclass(slots=True, frozen=True)
class ToggleOutcome:
    """Result of one toggle request.

    ``new_value`` is set only on success and ``error_kind`` only on failure.
    """

    success: bool
    new_value: str | None = None
    error_kind: ToggleErrorKind | None = None
    message: str = ""

    @classmethod
    def succeeded(cls, new_value: str, message: str = "") -> ToggleOutcome:
        return cls(success=True, new_value=new_value, message=message)

    @classmethod
    def rejected(cls, error_kind: ToggleErrorKind, message: str) -> ToggleOutcome:
        return cls(success=False, error_kind=error_kind, message=message)

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-friendly view."""
        payload: dict[str, object] = {"success": self.success}
        if self.success:
            payload["new_value"] = self.new_value
            if self.message:
                payload["message"] = self.message
        else:
            payload["error_kind"] = self.error_kind.value if self.error_kind else None
            payload["message"] = self.message
        return payload
