# flowhsm/core/validations.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from typing import TYPE_CHECKING, List

from flowhsm.core.errors import ChartDefinitionError
from flowhsm.core.events import EVENTLESS, done_state_type
from flowhsm.core.states import StateKind, StateNode

if TYPE_CHECKING:
    from flowhsm.runtime.graph import StateChart


class Validator:
    """
    Performs construction-time validation of a statechart, ensuring states,
    transitions and named references conform to the structural rules.
    """

    def __init__(self) -> None:
        self._rules_engine = _ValidationRulesEngine()

    def validate_chart(self, chart: "StateChart") -> None:
        """
        Check the chart's states and transitions for consistency.

        :param chart: The chart to validate.
        :raises ChartDefinitionError: If any rule is violated; the message lists
            every violation found.
        """
        errors = self._rules_engine.collect(chart)
        if errors:
            raise ChartDefinitionError("\n".join(errors))


class _ValidationRulesEngine:
    """
    Internal engine applying structural and reference rules to every node.
    """

    def collect(self, chart: "StateChart") -> List[str]:
        errors: List[str] = []
        if not chart.root.is_compound:
            errors.append("Root state must declare child states")
        for node in chart.get_all_states():
            errors.extend(self._check_structure(node))
            errors.extend(self._check_references(node, chart))
        return errors

    def _check_structure(self, node: StateNode) -> List[str]:
        name = node.id or "<root>"
        errors = []
        if node.kind is StateKind.COMPOUND:
            if node.initial is None:
                errors.append(f"Compound state '{name}' has no initial child")
            elif node.initial not in node.children:
                errors.append(f"Compound state '{name}' initial '{node.initial}' is not a child")
        elif node.initial is not None:
            errors.append(f"State '{name}' declares an initial child but has no children")
        if node.kind is StateKind.FINAL:
            if node.children:
                errors.append(f"Final state '{name}' cannot have children")
            if node.on:
                errors.append(f"Final state '{name}' cannot declare transitions")
            if node.invoke is not None:
                errors.append(f"Final state '{name}' cannot invoke services")
        if node.is_root and EVENTLESS in node.on:
            errors.append("Root state cannot declare eventless transitions")
        if done_state_type(node.id) in node.on and not node.is_compound:
            errors.append(f"State '{name}' declares on_done but has no child region")
        return errors

    def _check_references(self, node: StateNode, chart: "StateChart") -> List[str]:
        name = node.id or "<root>"
        errors = []
        for action in node.entry + node.exit:
            if not chart.actions.has(action):
                errors.append(f"State '{name}': unknown action '{action}'")
        if node.invoke is not None and node.invoke.src not in chart.services:
            errors.append(f"State '{name}': unknown service '{node.invoke.src}'")
        for transitions in node.on.values():
            for transition in transitions:
                if transition.guard is not None and not chart.guards.has(transition.guard):
                    errors.append(f"State '{name}': unknown guard '{transition.guard}'")
                for action in transition.actions:
                    if not chart.actions.has(action):
                        errors.append(f"State '{name}': unknown action '{action}'")
        return errors
