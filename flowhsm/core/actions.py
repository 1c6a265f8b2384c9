# flowhsm/core/actions.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional

from flowhsm.core.errors import TransitionError
from flowhsm.interfaces.types import ActionFn, FieldReducer

if TYPE_CHECKING:
    from flowhsm.core.events import Event
    from flowhsm.runtime.context import Context


def assign(**reducers: FieldReducer) -> ActionFn:
    """
    Build an action from per-field reducers. Each reducer receives the context
    the action was called with and the event, and returns the new field value.

    Example:
        record_results = assign(results=lambda ctx, event: event.data)
    """

    def _assign(context: "Context", event: "Event") -> Dict[str, Any]:
        return {name: reducer(context, event) for name, reducer in reducers.items()}

    return _assign


class ActionRegistry:
    """
    Named context reducers. An action takes (context, event) and returns a
    partial mapping of fields to replace.
    """

    def __init__(self, actions: Optional[Mapping[str, ActionFn]] = None) -> None:
        self._actions: Dict[str, ActionFn] = dict(actions or {})

    def register(self, name: str, fn: ActionFn) -> None:
        """
        Register a named action. Overwrites if already registered.
        """
        self._actions[name] = fn

    def has(self, name: str) -> bool:
        return name in self._actions

    def names(self) -> List[str]:
        return list(self._actions)

    def apply(self, names: Iterable[str], context: "Context", event: "Event") -> "Context":
        """
        Run the named actions in order and return the resulting context. Each
        action sees the fields written by the ones before it; the caller only
        publishes the final result.

        :raises TransitionError: If any action fails.
        """
        updated = context
        for name in names:
            fn = self._actions[name]
            try:
                partial = fn(updated, event)
            except Exception as e:
                raise TransitionError(f"Action '{name}' failed: {e}") from e
            if partial:
                updated = updated.update(partial)
        return updated
