# flowhsm/core/hooks.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional

if TYPE_CHECKING:
    from flowhsm.core.events import Event
    from flowhsm.core.states import StateNode


class HookManager:
    """
    Manages the registration and execution of hooks that listen to interpreter
    lifecycle events (on_enter, on_exit, on_transition, on_error). Users can
    attach logging, monitoring, or custom side effects without altering core
    logic. A hook implements any subset of those methods.
    """

    def __init__(self, hooks: Optional[List[Any]] = None) -> None:
        self._hooks: List[Any] = list(hooks or [])

    def register_hook(self, hook: Any) -> None:
        """
        Add a new hook to the manager's list of hooks.
        """
        self._hooks.append(hook)

    @property
    def hooks(self) -> List[Any]:
        return list(self._hooks)

    def execute_on_enter(self, state: "StateNode") -> None:
        self._invoke("on_enter", state)

    def execute_on_exit(self, state: "StateNode") -> None:
        self._invoke("on_exit", state)

    def execute_on_transition(self, source: str, target: Optional[str], event: "Event") -> None:
        self._invoke("on_transition", source, target, event)

    def execute_on_error(self, error: Exception) -> None:
        self._invoke("on_error", error)

    def _invoke(self, method: str, *args: Any) -> None:
        for hook in self._hooks:
            if hasattr(hook, method):
                getattr(hook, method)(*args)
