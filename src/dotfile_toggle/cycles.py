"""Value cycle groups, matching rules, and next-value resolution."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

CycleGroup = tuple[str, ...]

DEFAULT_CYCLE_GROUPS: tuple[CycleGroup, ...] = (
    ("true", "false"),
    ("TRUE", "FALSE"),
    ("yes", "no"),
    ("YES", "NO"),
    ("1", "0"),
    ("on", "off"),
    ("ON", "OFF"),
    ("enabled", "disabled"),
    ("ENABLED", "DISABLED"),
    ("production", "development"),
    ("prod", "dev"),
)

_QUOTE_CHARS = ('"', "'")


@dataclass(slots=True, frozen=True)
class CycleTable:
    """Ordered, immutable table of cycle groups."""

    groups: tuple[CycleGroup, ...] = DEFAULT_CYCLE_GROUPS

    @classmethod
    def from_lists(cls, raw_groups: Iterable[Sequence[object]]) -> CycleTable:
        """Validate raw configured groups and build a table."""
        groups: list[CycleGroup] = []
        for position, raw in enumerate(raw_groups):
            if isinstance(raw, str) or not isinstance(raw, Sequence):
                raise ValueError(f"Cycle group {position} must be a list of strings.")
            members: list[str] = []
            for item in raw:
                if not isinstance(item, str):
                    raise ValueError(f"Cycle group {position} must contain only strings.")
                members.append(item)
            if len(members) < 2:
                raise ValueError(f"Cycle group {position} must have at least 2 values.")
            if len(set(members)) != len(members):
                raise ValueError(f"Cycle group {position} must not repeat values.")
            if any(not member for member in members):
                raise ValueError(f"Cycle group {position} must not contain empty values.")
            groups.append(tuple(members))
        return cls(groups=tuple(groups))

    def find(self, value: str) -> CycleGroup | None:
        """Return the first group matching a raw value, or None."""
        candidate = normalize_value(value)
        if not candidate:
            return None
        lowered = candidate.lower()
        for group in self.groups:
            if candidate in group:
                return group
            if lowered in (member.lower() for member in group):
                return group
        return None

    def to_lists(self) -> list[list[str]]:
        """Return a serializable copy of the table."""
        return [list(group) for group in self.groups]


def split_quotes(value: str) -> tuple[str, str]:
    """Split a value into its single surrounding quote character and inner text."""
    if len(value) >= 2 and value[0] in _QUOTE_CHARS and value[-1] == value[0]:
        return value[0], value[1:-1]
    return "", value


def normalize_value(value: str) -> str:
    """Normalize a raw value for cycle matching."""
    trimmed = value.replace("\r", "").strip()
    _, inner = split_quotes(trimmed)
    return inner


def cycle_index(value: str, cycle: Sequence[str]) -> int | None:
    """Return the position of a (possibly quoted) value within a cycle."""
    _, inner = split_quotes(value.strip())
    for index, member in enumerate(cycle):
        if member == inner:
            return index
    lowered = inner.lower()
    for index, member in enumerate(cycle):
        if member.lower() == lowered:
            return index
    return None


def next_value(value: str, cycle: Sequence[str]) -> str:
    """Advance a value to its successor in the cycle, keeping its quote style.

    Returns the input unchanged when the value is not a member of the cycle;
    callers that need to distinguish that case should check ``cycle_index``.
    """
    index = cycle_index(value, cycle)
    if index is None:
        return value
    quote, _ = split_quotes(value.strip())
    successor = cycle[(index + 1) % len(cycle)]
    return f"{quote}{successor}{quote}"
