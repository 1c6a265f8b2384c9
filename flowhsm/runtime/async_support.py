# flowhsm/runtime/async_support.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import asyncio
import functools
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Tuple

from flowhsm.core.events import Event, done_invoke, error_event
from flowhsm.core.states import InvokeDescriptor
from flowhsm.interfaces.types import ServiceFn
from flowhsm.runtime.context import Context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceHandle:
    """
    An in-flight service call bound to the state instance that started it.
    """

    state_id: str
    service_id: str
    generation: int
    task: "asyncio.Future[Any]"


class ServiceInvoker:
    """
    Starts the asynchronous service declared by a state when it is entered and
    routes its outcome back to the interpreter as an event. Each state id has a
    generation counter; exiting the state bumps it, so a result that arrives
    for an earlier generation is dropped without effect.
    """

    def __init__(self, services: Mapping[str, ServiceFn], deliver: Callable[[ServiceHandle, Event], None]) -> None:
        """
        :param services: Service functions by name, ``(context, event) -> awaitable``.
        :param deliver: Called with the handle and the ``done.invoke``/``error.platform``
            event when a current call settles.
        """
        self._services = services
        self._deliver = deliver
        self._generations: Dict[str, int] = defaultdict(int)
        self._live: Dict[str, ServiceHandle] = {}

    def start(self, state_id: str, descriptor: InvokeDescriptor, context: Context, event: Event) -> ServiceHandle:
        """
        Start the service for a newly entered state instance. Requires a running
        event loop.
        """
        loop = asyncio.get_running_loop()
        self.cancel(state_id)
        service = self._services[descriptor.src]

        async def _run() -> Any:
            return await service(context, event)

        task = loop.create_task(_run())
        handle = ServiceHandle(state_id, descriptor.id, self._generations[state_id], task)
        self._live[state_id] = handle
        task.add_done_callback(functools.partial(self._on_settled, handle))
        logger.debug("Started service %s for %s (generation %d)", descriptor.id, state_id, handle.generation)
        return handle

    def cancel(self, state_id: str) -> None:
        """
        End the current instance of ``state_id``: bump its generation and cancel
        its live call, if any. Outcomes already queued for the old generation
        are then ignored by the interpreter.
        """
        self._generations[state_id] += 1
        handle = self._live.pop(state_id, None)
        if handle is None:
            return
        if not handle.task.done():
            handle.task.cancel()
        logger.debug("Cancelled service %s for %s (generation %d)", handle.service_id, state_id, handle.generation)

    def cancel_all(self) -> None:
        for state_id in list(self._live):
            self.cancel(state_id)

    def is_current(self, handle: ServiceHandle) -> bool:
        return self._live.get(handle.state_id) is handle and self._generations[handle.state_id] == handle.generation

    def is_current_origin(self, origin: Tuple[str, int]) -> bool:
        state_id, generation = origin
        return self._generations[state_id] == generation

    def generation(self, state_id: str) -> int:
        return self._generations[state_id]

    @property
    def live(self) -> List[ServiceHandle]:
        return list(self._live.values())

    def _on_settled(self, handle: ServiceHandle, task: "asyncio.Future[Any]") -> None:
        if task.cancelled() or not self.is_current(handle):
            logger.debug(
                "Discarding stale result of %s for %s (generation %d)", handle.service_id, handle.state_id, handle.generation
            )
            return
        del self._live[handle.state_id]
        origin = (handle.state_id, handle.generation)
        error = task.exception()
        if error is None:
            event = done_invoke(handle.service_id, task.result(), origin)
        else:
            event = error_event(handle.service_id, error, origin)
        self._deliver(handle, event)

    async def wait_until_idle(self) -> None:
        """
        Wait until no call is in flight, including calls started by the
        transitions that earlier results trigger.
        """
        while self._live:
            await asyncio.gather(*(h.task for h in list(self._live.values())), return_exceptions=True)
            # done callbacks run on the next loop iteration
            await asyncio.sleep(0)
