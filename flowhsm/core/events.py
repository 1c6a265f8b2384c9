# flowhsm/core/events.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

EVENTLESS = ""
INIT_EVENT = "flowhsm.init"

_DONE_STATE_PREFIX = "done.state."
_DONE_INVOKE_PREFIX = "done.invoke."
_ERROR_PREFIX = "error.platform."


@dataclass(frozen=True)
class Event:
    """
    Represents a signal within the state machine. External callers send events
    with a type and an optional payload; the engine synthesizes its own events
    for service outcomes and region completion.

    :param type: Event type used to look up transitions.
    :param data: Optional payload passed to guards and actions.
    :param origin: For service outcomes, the (state id, generation) of the call
        that produced the event.
    """

    type: str
    data: Any = None
    origin: Optional[Tuple[str, int]] = field(default=None, compare=False, repr=False)

    @property
    def is_internal(self) -> bool:
        """True for events synthesized by the engine."""
        return self.type.startswith((_DONE_STATE_PREFIX, _DONE_INVOKE_PREFIX, _ERROR_PREFIX))


def done_state_type(state_id: str) -> str:
    """Event type raised when the region of ``state_id`` reaches a final child."""
    return f"{_DONE_STATE_PREFIX}{state_id}"


def done_invoke_type(service_id: str) -> str:
    """Event type delivered when service ``service_id`` resolves."""
    return f"{_DONE_INVOKE_PREFIX}{service_id}"


def error_type(service_id: str) -> str:
    """Event type delivered when service ``service_id`` rejects."""
    return f"{_ERROR_PREFIX}{service_id}"


def done_invoke(service_id: str, result: Any, origin: Optional[Tuple[str, int]] = None) -> Event:
    return Event(done_invoke_type(service_id), result, origin)


def error_event(service_id: str, reason: Any, origin: Optional[Tuple[str, int]] = None) -> Event:
    return Event(error_type(service_id), reason, origin)
