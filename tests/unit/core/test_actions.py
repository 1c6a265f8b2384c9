# tests/unit/core/test_actions.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import pytest

from flowhsm.core.actions import ActionRegistry, assign
from flowhsm.core.errors import TransitionError
from flowhsm.core.events import Event
from flowhsm.runtime.context import Context


def test_assign_builds_partial_update():
    action = assign(results=lambda ctx, event: event.data, seen=lambda ctx, event: True)
    partial = action(Context(), Event("E", {"count": 3}))
    assert partial == {"results": {"count": 3}, "seen": True}


def test_apply_folds_actions_in_order():
    registry = ActionRegistry(
        {
            "increment": assign(count=lambda ctx, event: ctx["count"] + 1),
            "double": assign(count=lambda ctx, event: ctx["count"] * 2),
        }
    )
    result = registry.apply(["increment", "double"], Context(count=1), Event("E"))
    assert result["count"] == 4


def test_apply_does_not_mutate_input():
    registry = ActionRegistry({"set": assign(value=lambda ctx, event: event.data)})
    original = Context(value=1, other="kept")
    result = registry.apply(["set"], original, Event("E", 2))
    assert original["value"] == 1
    assert result == {"value": 2, "other": "kept"}


def test_apply_with_no_actions_returns_same_context():
    context = Context(value=1)
    assert ActionRegistry().apply([], context, Event("E")) is context


def test_empty_partial_is_ignored():
    registry = ActionRegistry({"noop": lambda ctx, event: {}})
    context = Context(value=1)
    assert registry.apply(["noop"], context, Event("E")) is context


def test_failing_action_raises_transition_error():
    def explode(ctx, event):
        raise ValueError("bad")

    registry = ActionRegistry({"explode": explode})
    with pytest.raises(TransitionError, match="explode"):
        registry.apply(["explode"], Context(), Event("E"))


def test_register_has_names():
    registry = ActionRegistry()
    registry.register("a", lambda ctx, event: {})
    assert registry.has("a")
    assert registry.names() == ["a"]
