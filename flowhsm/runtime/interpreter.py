# flowhsm/runtime/interpreter.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Deque, List, Mapping, Optional, Tuple, Union

from flowhsm.core.errors import EventlessLoopError, FlowHSMError
from flowhsm.core.events import EVENTLESS, INIT_EVENT, Event, done_state_type
from flowhsm.core.hooks import HookManager
from flowhsm.core.states import StateNode
from flowhsm.core.transitions import Transition, select_transition
from flowhsm.interfaces.types import Listener, StatePath
from flowhsm.runtime.async_support import ServiceHandle, ServiceInvoker
from flowhsm.runtime.context import Context, Snapshot
from flowhsm.runtime.event_queue import EventQueue
from flowhsm.runtime.graph import ROOT_ID, StateChart

logger = logging.getLogger(__name__)

DEFAULT_MAX_MICROSTEPS = 100


class InterpreterStatus(Enum):
    NOT_STARTED = auto()
    RUNNING = auto()
    DONE = auto()  # Root reached a final child
    STOPPED = auto()


@dataclass
class _Step:
    """
    Working copy of the configuration and context for one macrostep. Nothing
    here is visible outside the interpreter until the step is committed.
    """

    context: Context
    leaf: str
    entered: List[str] = field(default_factory=list)
    exited: List[str] = field(default_factory=list)
    internal: Deque[Event] = field(default_factory=deque)
    done: bool = False


class Interpreter:
    """
    Runs one session of a StateChart. Holds the active leaf and the context,
    processes one event at a time to a stable configuration (a macrostep) and
    publishes a Snapshot to subscribers after each one.

    Events sent while a macrostep is running (from a listener, a hook or an
    action) are queued and processed afterwards in FIFO order. Service outcomes
    go through the same queue.
    """

    def __init__(
        self,
        chart: StateChart,
        *,
        hooks: Optional[List[Any]] = None,
        max_microsteps: int = DEFAULT_MAX_MICROSTEPS,
    ) -> None:
        """
        :param chart: The statechart definition to run.
        :param hooks: Optional hook objects implementing on_enter, on_exit,
            on_transition and/or on_error.
        :param max_microsteps: Bound on eventless and completion microsteps in a
            single macrostep.
        """
        self._chart = chart
        self._hooks = HookManager(hooks)
        self._max_microsteps = max_microsteps
        self._queue = EventQueue()
        self._invoker = ServiceInvoker(chart.services, self._on_service_settled)
        self._listeners: List[Listener] = []
        self._status = InterpreterStatus.NOT_STARTED
        self._processing = False
        self._leaf: Optional[str] = None
        self._context = Context()
        self._snapshot: Optional[Snapshot] = None

    @property
    def chart(self) -> StateChart:
        return self._chart

    @property
    def status(self) -> InterpreterStatus:
        return self._status

    @property
    def snapshot(self) -> Optional[Snapshot]:
        """The last committed snapshot, or None before start."""
        return self._snapshot

    @property
    def context(self) -> Context:
        return self._context

    @property
    def configuration(self) -> Tuple[str, ...]:
        """Ids of the active states from the root's child down to the leaf."""
        if self._leaf is None:
            return ()
        return tuple(node.id for node in self._chart.path_nodes(self._leaf))

    @property
    def value(self) -> StatePath:
        return self._snapshot.value if self._snapshot else ()

    def start(self, initial_context: Optional[Mapping[str, Any]] = None) -> Snapshot:
        """
        Enter the root's initial chain running entry actions top-down, then
        resolve eventless transitions until none apply.
        """
        if self._status is InterpreterStatus.RUNNING:
            return self._snapshot

        self._queue.clear()
        self._status = InterpreterStatus.RUNNING
        event = Event(INIT_EVENT)
        step = _Step(context=Context(initial_context), leaf=ROOT_ID)
        previous = self._snapshot
        self._processing = True
        try:
            root = self._chart.root
            self._enter_nodes(step, [root] + self._chart.initial_descent(root.id), event)
            self._settle(step, event)
            self._commit(step, event)
            logger.info("Interpreter started in %s", step.leaf)
            self._drain()
        except (FlowHSMError, RuntimeError) as error:
            if self._snapshot is previous:
                # nothing was published
                self._status = InterpreterStatus.NOT_STARTED
                if isinstance(error, FlowHSMError):
                    logger.exception("Failed to start interpreter")
                    self._hooks.execute_on_error(error)
            raise
        finally:
            self._processing = False
        return self._snapshot

    def send(self, event: Union[Event, str], data: Any = None) -> Optional[Snapshot]:
        """
        Process an event to quiescence and return the resulting snapshot. When
        called during a macrostep the event is queued and the current snapshot
        is returned; subscribers see the result once it is processed.

        :param event: An Event, or an event type combined with ``data``.
        """
        if isinstance(event, str):
            event = Event(event, data)
        if self._status is not InterpreterStatus.RUNNING:
            logger.warning("Ignoring event %s sent to %s interpreter", event.type, self._status.name.lower())
            return self._snapshot
        self._queue.enqueue(event)
        if not self._processing:
            self._processing = True
            try:
                self._drain()
            finally:
                self._processing = False
        return self._snapshot

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with the snapshot of every macrostep, in
        order. A running interpreter also calls it once with the current
        snapshot. Returns a function that removes the listener.
        """
        self._listeners.append(listener)
        if self._snapshot is not None and self._status is InterpreterStatus.RUNNING:
            listener(self._snapshot)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def stop(self) -> None:
        """Cancel in-flight services, drop queued events and release listeners."""
        if self._status in (InterpreterStatus.NOT_STARTED, InterpreterStatus.STOPPED):
            return
        self._invoker.cancel_all()
        self._queue.clear()
        self._listeners.clear()
        self._status = InterpreterStatus.STOPPED
        logger.info("Interpreter stopped in %s", self._leaf)

    async def wait_until_idle(self) -> Optional[Snapshot]:
        """Wait for every in-flight service and the transitions its outcome triggers."""
        await self._invoker.wait_until_idle()
        return self._snapshot

    # -------------------------------------------------------------------------
    # Macrostep
    # -------------------------------------------------------------------------

    def _drain(self) -> None:
        while self._status is InterpreterStatus.RUNNING:
            event = self._queue.dequeue()
            if event is None:
                return
            self._macrostep(event)

    def _on_service_settled(self, handle: ServiceHandle, event: Event) -> None:
        if self._status is not InterpreterStatus.RUNNING:
            return
        self.send(event)

    def _macrostep(self, event: Event) -> None:
        if event.origin is not None and not self._invoker.is_current_origin(event.origin):
            logger.debug("Discarding %s from exited state %s", event.type, event.origin[0])
            return

        step = _Step(context=self._context, leaf=self._leaf)
        try:
            transition = self._select(step, event.type, event)
            if transition is None:
                logger.debug(
                    "No transition for %s event %s in %s",
                    "internal" if event.is_internal else "external",
                    event.type,
                    self._leaf,
                )
                return
            self._microstep(step, transition, event)
            self._settle(step, event)
        except FlowHSMError as error:
            logger.exception("Aborted macrostep for %s in %s", event.type, self._leaf)
            self._hooks.execute_on_error(error)
            raise
        self._commit(step, event)

    def _select(self, step: _Step, event_type: str, event: Event) -> Optional[Transition]:
        """
        Walk from the active leaf up through its ancestors. The first node that
        declares ``event_type`` owns the decision: if none of its transitions
        is enabled the event is not handled, even when an ancestor declares it.
        """
        for node in self._chart.lineage(step.leaf):
            transitions = node.on.get(event_type)
            if transitions:
                return select_transition(transitions, self._chart.guards, step.context, event)
        return None

    def _settle(self, step: _Step, event: Event) -> None:
        """
        Take eventless transitions, then region completions, until neither applies.
        """
        count = 0
        while not step.done:
            transition = self._select(step, EVENTLESS, event)
            trigger = event
            if transition is None:
                if not step.internal:
                    return
                trigger = step.internal.popleft()
                transition = self._select(step, trigger.type, trigger)
                if transition is None:
                    continue
            count += 1
            if count > self._max_microsteps:
                raise EventlessLoopError(
                    f"Eventless transitions did not settle within {self._max_microsteps} microsteps (at {step.leaf!r})"
                )
            self._microstep(step, transition, trigger)

    # -------------------------------------------------------------------------
    # Microstep
    # -------------------------------------------------------------------------

    def _microstep(self, step: _Step, transition: Transition, event: Event) -> None:
        """Exit innermost-first, run the transition actions, enter outermost-first."""
        if transition.target is None:
            step.context = self._chart.actions.apply(transition.actions, step.context, event)
            self._hooks.execute_on_transition(transition.source, None, event)
            return

        domain = self._domain(transition)
        for node in self._chart.lineage(step.leaf):
            if node.id == domain:
                break
            self._exit_node(step, node, event)
        step.leaf = domain

        step.context = self._chart.actions.apply(transition.actions, step.context, event)
        self._hooks.execute_on_transition(transition.source, transition.target, event)
        logger.debug("%s: %s -> %s", event.type or "(eventless)", transition.source, transition.target)

        path = self._chart.path_nodes(transition.target)
        below = [node for node in path if self._chart.is_descendant(node.id, domain)]
        self._enter_nodes(step, below + self._chart.initial_descent(transition.target), event)

    def _domain(self, transition: Transition) -> str:
        """
        The state whose descendants are exited and re-entered: the source for an
        internal transition, otherwise the nearest proper ancestor shared by
        source and target.
        """
        if transition.internal and self._chart.is_descendant(transition.target, transition.source):
            return transition.source
        target_ancestors = {node.id for node in self._chart.ancestors(transition.target)}
        for node in self._chart.ancestors(transition.source):
            if node.id in target_ancestors:
                return node.id
        return ROOT_ID

    def _exit_node(self, step: _Step, node: StateNode, event: Event) -> None:
        step.context = self._chart.actions.apply(node.exit, step.context, event)
        step.exited.append(node.id)
        self._hooks.execute_on_exit(node)

    def _enter_nodes(self, step: _Step, nodes: List[StateNode], event: Event) -> None:
        for node in nodes:
            step.context = self._chart.actions.apply(node.entry, step.context, event)
            step.entered.append(node.id)
            step.leaf = node.id
            self._hooks.execute_on_enter(node)
            if node.is_final:
                parent = self._chart.parent(node.id)
                if parent.is_root:
                    step.done = True
                else:
                    step.internal.append(Event(done_state_type(parent.id)))

    # -------------------------------------------------------------------------
    # Commit
    # -------------------------------------------------------------------------

    def _commit(self, step: _Step, event: Event) -> None:
        """Publish the step: swap in context and leaf, reconcile services, notify."""
        active = {node.id for node in self._chart.lineage(step.leaf)}
        to_start = [] if step.done else [
            self._chart.node(state_id)
            for state_id in dict.fromkeys(step.entered)
            if state_id in active and self._chart.node(state_id).invoke is not None
        ]
        if to_start:
            # raises before anything is published when no event loop is running
            asyncio.get_running_loop()

        for state_id in dict.fromkeys(step.exited):
            if self._chart.node(state_id).invoke is not None:
                self._invoker.cancel(state_id)

        self._context = step.context
        self._leaf = step.leaf
        if step.done:
            self._invoker.cancel_all()
            self._status = InterpreterStatus.DONE
            logger.info("Interpreter reached final state %s", step.leaf)
        for node in to_start:
            self._invoker.start(node.id, node.invoke, step.context, event)

        self._snapshot = Snapshot(value=self._chart.node(step.leaf).path, context=step.context, done=step.done)
        for listener in list(self._listeners):
            listener(self._snapshot)
