# flowhsm/runtime/event_queue.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from collections import deque
from typing import Optional

from flowhsm.core.events import Event


class EventQueue:
    """
    FIFO queue of events waiting for the interpreter. External sends and
    service deliveries share the same queue so their relative order is
    preserved; there is exactly one consumer.
    """

    def __init__(self) -> None:
        self._queue: deque = deque()

    def enqueue(self, event: Event) -> None:
        """
        Add an event to the back of the queue.

        :param event: The event to enqueue.
        """
        self._queue.append(event)

    def dequeue(self) -> Optional[Event]:
        """
        Remove and return the next event from the queue, or None if empty.
        """
        if self._queue:
            return self._queue.popleft()
        return None

    def clear(self) -> None:
        """
        Remove all events from the queue.
        """
        self._queue.clear()

    def is_empty(self) -> bool:
        return not self._queue

    def __len__(self) -> int:
        return len(self._queue)
