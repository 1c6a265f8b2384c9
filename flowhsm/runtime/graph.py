"""Declarative statechart definition and structural lookups."""

import logging
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from ..core.actions import ActionRegistry
from ..core.errors import ChartDefinitionError, StateNotFoundError
from ..core.events import EVENTLESS, done_invoke_type, done_state_type, error_type
from ..core.guards import GuardRegistry
from ..core.states import InvokeDescriptor, StateKind, StateNode
from ..core.transitions import Transition
from ..core.validations import Validator
from ..interfaces.types import ActionFn, GuardFn, ServiceFn

logger = logging.getLogger(__name__)

ROOT_ID = ""


def _parent_id(state_id: str) -> Optional[str]:
    if state_id == ROOT_ID:
        return None
    dot = state_id.rfind(".")
    return state_id[:dot] if dot >= 0 else ROOT_ID


def _join(base: str, rel: str) -> str:
    return f"{base}.{rel}" if base else rel


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class _ChartBuilder:
    """
    Internal two-pass builder: first collects every state id, then creates the
    immutable nodes bottom-up with all transition targets resolved.
    """

    def __init__(self, config: Mapping[str, Any]) -> None:
        self._config = config
        self._ids: Set[str] = set()

    def build(self) -> StateNode:
        self._collect(ROOT_ID, self._config)
        return self._build_node("", ROOT_ID, None, self._config)

    def _collect(self, state_id: str, config: Mapping[str, Any]) -> None:
        self._ids.add(state_id)
        for key, child in (config.get("states") or {}).items():
            if not key or "." in key or key.startswith("#"):
                raise ChartDefinitionError(f"Invalid state key {key!r} under {state_id or '<root>'!r}")
            self._collect(_join(state_id, key), child or {})

    def _kind(self, state_id: str, config: Mapping[str, Any]) -> StateKind:
        declared = config.get("type")
        if declared == "final":
            return StateKind.FINAL
        if declared in ("parallel", "history"):
            raise ChartDefinitionError(f"State {state_id!r}: {declared} states are not supported")
        if declared not in (None, "atomic", "compound"):
            raise ChartDefinitionError(f"State {state_id!r}: unknown state type {declared!r}")
        return StateKind.COMPOUND if config.get("states") else StateKind.ATOMIC

    def _build_node(
        self, key: str, state_id: str, parent_id: Optional[str], config: Mapping[str, Any]
    ) -> StateNode:
        children = {
            child_key: self._build_node(child_key, _join(state_id, child_key), state_id, child_config or {})
            for child_key, child_config in (config.get("states") or {}).items()
        }

        on: Dict[str, Tuple[Transition, ...]] = {}
        for event_type, spec in (config.get("on") or {}).items():
            on[event_type] = self._transitions(state_id, event_type, spec)
        if "always" in config:
            on[EVENTLESS] = on.get(EVENTLESS, ()) + self._transitions(state_id, EVENTLESS, config["always"])
        if "on_done" in config:
            done_event = done_state_type(state_id)
            on[done_event] = self._transitions(state_id, done_event, config["on_done"])

        invoke = None
        if config.get("invoke"):
            invoke_config = config["invoke"]
            invoke = InvokeDescriptor(src=invoke_config["src"], id=invoke_config.get("id", invoke_config["src"]))
            if "on_done" in invoke_config:
                done_event = done_invoke_type(invoke.id)
                on[done_event] = self._transitions(state_id, done_event, invoke_config["on_done"])
            if "on_error" in invoke_config:
                err_event = error_type(invoke.id)
                on[err_event] = self._transitions(state_id, err_event, invoke_config["on_error"])

        return StateNode(
            key=key,
            id=state_id,
            kind=self._kind(state_id, config),
            parent_id=parent_id,
            initial=config.get("initial"),
            children=children,
            entry=tuple(_as_list(config.get("entry"))),
            exit=tuple(_as_list(config.get("exit"))),
            on=on,
            invoke=invoke,
        )

    def _transitions(self, source: str, event_type: str, spec: Any) -> Tuple[Transition, ...]:
        result = []
        for item in _as_list(spec):
            if isinstance(item, str):
                item = {"target": item}
            target, internal = self._resolve_target(source, item.get("target"))
            result.append(
                Transition(
                    event=event_type,
                    source=source,
                    target=target,
                    guard=item.get("guard"),
                    actions=tuple(_as_list(item.get("actions"))),
                    internal=internal,
                )
            )
        return tuple(result)

    def _resolve_target(self, source: str, target: Optional[str]) -> Tuple[Optional[str], bool]:
        """
        Resolve a target reference declared on ``source``:
        ``#a.b`` is absolute, ``.a`` is a child of the source (internal),
        ``a`` is a sibling of the source.
        """
        if target is None:
            return None, True
        if target.startswith("#"):
            resolved, internal = target[1:], False
        elif target.startswith("."):
            resolved, internal = _join(source, target[1:]), True
        else:
            parent = _parent_id(source)
            resolved, internal = _join(source if parent is None else parent, target), False
        if resolved not in self._ids:
            raise ChartDefinitionError(f"Transition from {source or '<root>'!r}: unknown target {target!r}")
        return resolved, internal


class StateChart:
    """
    Immutable statechart definition. Built once from a nested configuration and
    shared read-only by every interpreter running it. Provides node lookup,
    ancestor chains, transitions per (node, event) and initial descent.

    Configuration format::

        {
            "initial": "idle",
            "states": {
                "idle": {"on": {"GO": {"target": "busy", "guard": "canGo", "actions": ["record"]}}},
                "busy": {
                    "entry": ["announce"],
                    "invoke": {"src": "fetch", "on_done": "idle", "on_error": "failed"},
                },
                "failed": {"type": "final"},
            },
        }

    :raises ChartDefinitionError: If the definition is malformed.
    """

    def __init__(
        self,
        root: StateNode,
        guards: Optional[Mapping[str, GuardFn]] = None,
        actions: Optional[Mapping[str, ActionFn]] = None,
        services: Optional[Mapping[str, ServiceFn]] = None,
        validator: Optional[Validator] = None,
    ) -> None:
        self._root = root
        self._nodes: Dict[str, StateNode] = {}
        self._index(root)
        self.guards = guards if isinstance(guards, GuardRegistry) else GuardRegistry(guards)
        self.actions = actions if isinstance(actions, ActionRegistry) else ActionRegistry(actions)
        self.services: Dict[str, ServiceFn] = dict(services or {})
        (validator or Validator()).validate_chart(self)

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any],
        guards: Optional[Mapping[str, GuardFn]] = None,
        actions: Optional[Mapping[str, ActionFn]] = None,
        services: Optional[Mapping[str, ServiceFn]] = None,
    ) -> "StateChart":
        chart = cls(_ChartBuilder(config).build(), guards=guards, actions=actions, services=services)
        logger.debug("Built statechart with %d states", len(chart._nodes))
        return chart

    def with_services(self, services: Mapping[str, ServiceFn]) -> "StateChart":
        """Return a chart sharing this structure with some services replaced."""
        merged = dict(self.services)
        merged.update(services)
        return StateChart(self._root, guards=self.guards, actions=self.actions, services=merged)

    def _index(self, node: StateNode) -> None:
        self._nodes[node.id] = node
        for child in node.children.values():
            self._index(child)

    @property
    def root(self) -> StateNode:
        return self._root

    def __contains__(self, state_id: str) -> bool:
        return state_id in self._nodes

    def get_all_states(self) -> List[StateNode]:
        return list(self._nodes.values())

    def node(self, state_id: str) -> StateNode:
        try:
            return self._nodes[state_id]
        except KeyError:
            raise StateNotFoundError(f"No state with id {state_id!r}") from None

    def parent(self, state_id: str) -> Optional[StateNode]:
        parent_id = self.node(state_id).parent_id
        return None if parent_id is None else self._nodes[parent_id]

    def ancestors(self, state_id: str) -> List[StateNode]:
        """Proper ancestors from immediate parent up to the root."""
        result = []
        current = self.parent(state_id)
        while current is not None:
            result.append(current)
            current = self.parent(current.id)
        return result

    def lineage(self, state_id: str) -> List[StateNode]:
        """The node itself followed by its ancestors, innermost first."""
        return [self.node(state_id)] + self.ancestors(state_id)

    def is_descendant(self, state_id: str, ancestor_id: str) -> bool:
        """True if ``state_id`` is a proper descendant of ``ancestor_id``."""
        return any(a.id == ancestor_id for a in self.ancestors(state_id))

    def transitions_for(self, state_id: str, event_type: str) -> Tuple[Transition, ...]:
        return self.node(state_id).on.get(event_type, ())

    def on_done(self, state_id: str) -> Tuple[Transition, ...]:
        return self.node(state_id).on_done

    def initial_descent(self, state_id: str) -> List[StateNode]:
        """Nodes entered below ``state_id`` by following initial children to a leaf."""
        result = []
        node = self.node(state_id)
        while node.is_compound:
            node = node.children[node.initial]
            result.append(node)
        return result

    def path_nodes(self, state_id: str) -> List[StateNode]:
        """Nodes from the root's child down to ``state_id``."""
        return list(reversed(self.lineage(state_id)))[1:]
