from __future__ import annotations

import pytest

from dotfile_toggle.cycles import DEFAULT_CYCLE_GROUPS, cycle_index, next_value


@pytest.mark.parametrize("group", DEFAULT_CYCLE_GROUPS + (("low", "medium", "high"),))
def test_next_value_advances_and_wraps(group: tuple[str, ...]) -> None:
    for index, member in enumerate(group):
        assert next_value(member, group) == group[(index + 1) % len(group)]


def test_cycling_len_times_returns_to_start() -> None:
    group = ("red", "green", "blue", "off")
    value = "green"
    for _ in range(len(group)):
        value = next_value(value, group)
    assert value == "green"


def test_quote_style_is_preserved() -> None:
    assert next_value('"true"', ("true", "false")) == '"false"'
    assert next_value("'ON'", ("ON", "OFF")) == "'OFF'"
    assert next_value("true", ("true", "false")) == "false"


def test_case_insensitive_lookup_emits_canonical_member() -> None:
    assert next_value("yes", ("YES", "NO")) == "NO"
    assert next_value('"Yes"', ("YES", "NO")) == '"NO"'


def test_exact_member_wins_over_case_folded_member() -> None:
    group = ("on", "ON")
    assert cycle_index("ON", group) == 1
    assert next_value("ON", group) == "on"


def test_unknown_value_is_returned_unchanged() -> None:
    assert cycle_index("maybe", ("true", "false")) is None
    assert next_value("maybe", ("true", "false")) == "maybe"


def test_mismatched_or_lone_quotes_are_not_stripped() -> None:
    assert cycle_index("'true\"", ("true", "false")) is None
    assert next_value('"', ('"', "x")) == "x"
