# flowhsm/core/states.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Dict, Optional, Tuple

from flowhsm.core.events import done_state_type

if TYPE_CHECKING:
    from flowhsm.core.transitions import Transition


class StateKind(Enum):
    """
    Kind of a state node. Parallel and history states are not supported.
    """

    ATOMIC = auto()  # Leaf with no substates
    COMPOUND = auto()  # Exactly one active child at a time
    FINAL = auto()  # Leaf whose entry completes the parent region


@dataclass(frozen=True)
class InvokeDescriptor:
    """
    Describes the asynchronous service a state starts on entry.

    :param src: Name of the service in the chart's service table.
    :param id: Identifier used for the ``done.invoke``/``error.platform`` events.
    """

    src: str
    id: str


@dataclass(frozen=True, eq=False)
class StateNode:
    """
    Immutable description of one state in the chart. Nodes are identified by
    their dotted ``id`` (path of keys from the root, root is ``""``) and hold
    their children, actions, transitions and invoked service.
    """

    key: str
    id: str
    kind: StateKind
    parent_id: Optional[str] = None
    initial: Optional[str] = None
    children: Dict[str, "StateNode"] = field(default_factory=dict)
    entry: Tuple[str, ...] = ()
    exit: Tuple[str, ...] = ()
    on: Dict[str, Tuple["Transition", ...]] = field(default_factory=dict)
    invoke: Optional[InvokeDescriptor] = None

    def __hash__(self) -> int:
        return hash(self.id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StateNode):
            return NotImplemented
        return self.id == other.id

    @property
    def is_compound(self) -> bool:
        return self.kind is StateKind.COMPOUND

    @property
    def is_final(self) -> bool:
        return self.kind is StateKind.FINAL

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def path(self) -> Tuple[str, ...]:
        """Keys from the root's child down to this node."""
        return tuple(self.id.split(".")) if self.id else ()

    @property
    def on_done(self) -> Tuple["Transition", ...]:
        """Transitions taken when this node's region reaches a final child."""
        return self.on.get(done_state_type(self.id), ())

    def __repr__(self) -> str:
        return f"StateNode({self.id or '<root>'!r}, {self.kind.name})"
