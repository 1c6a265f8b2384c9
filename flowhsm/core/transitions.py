# flowhsm/core/transitions.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Optional, Tuple

from flowhsm.core.events import EVENTLESS, Event

if TYPE_CHECKING:
    from flowhsm.core.guards import GuardRegistry
    from flowhsm.runtime.context import Context


@dataclass(frozen=True)
class Transition:
    """
    Defines a possible path from one state to another, guarded by a named
    condition and performing named actions.

    :param event: Triggering event type; ``""`` marks an eventless transition.
    :param source: Id of the state that declares the transition.
    :param target: Resolved id of the target state, or None for a targetless
        transition that only runs actions.
    :param guard: Name of the guard in the chart's guard table, if any.
    :param actions: Names of the actions run when the transition is taken.
    :param internal: True when the target is a descendant of the source and
        the source must not be exited.
    """

    event: str
    source: str
    target: Optional[str] = None
    guard: Optional[str] = None
    actions: Tuple[str, ...] = ()
    internal: bool = False

    @property
    def eventless(self) -> bool:
        return self.event == EVENTLESS

    def evaluate_guard(self, guards: "GuardRegistry", context: "Context", event: Event) -> bool:
        """
        Evaluate the attached guard. A transition without a guard is always enabled.

        :raises GuardError: If the guard throws.
        """
        if self.guard is None:
            return True
        return guards.check(self.guard, context, event)


class _GuardEvaluator:
    """
    Internal helper that picks the first enabled transition of a declared list,
    respecting declaration order.
    """

    def __init__(self, guards: "GuardRegistry") -> None:
        self._guards = guards

    def first_enabled(
        self, transitions: Iterable[Transition], context: "Context", event: Event
    ) -> Optional[Transition]:
        for transition in transitions:
            if transition.evaluate_guard(self._guards, context, event):
                return transition
        return None


def select_transition(
    transitions: Iterable[Transition], guards: "GuardRegistry", context: "Context", event: Event
) -> Optional[Transition]:
    """
    Return the first transition whose guard passes, or None when none does.
    """
    return _GuardEvaluator(guards).first_enabled(transitions, context, event)
