from __future__ import annotations

import pytest

from dotfile_toggle.tools import ToolDispatchError, ToolRegistry


def test_registry_keeps_deterministic_registration_order() -> None:
    registry = ToolRegistry()
    registry.register("dotfiles.alpha", lambda _: {"tool": "alpha"})
    registry.register("dotfiles.beta", lambda _: {"tool": "beta"})

    assert registry.names() == ("dotfiles.alpha", "dotfiles.beta")


def test_registry_dispatches_registered_tool() -> None:
    registry = ToolRegistry()
    registry.register("dotfiles.echo", lambda payload: {"payload": payload})

    assert registry.dispatch("dotfiles.echo", {"k": "v"}) == {"payload": {"k": "v"}}


def test_registry_rejects_duplicates_and_unknown_names() -> None:
    registry = ToolRegistry()
    registry.register("dotfiles.echo", lambda payload: payload)

    with pytest.raises(ValueError, match="already registered"):
        registry.register("dotfiles.echo", lambda payload: payload)
    with pytest.raises(ToolDispatchError) as raised:
        registry.dispatch("dotfiles.missing", {})
    assert raised.value.code == "UNKNOWN_TOOL"
