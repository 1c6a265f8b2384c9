# flowhsm/interfaces/types.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Tuple

if TYPE_CHECKING:
    from flowhsm.core.events import Event
    from flowhsm.runtime.context import Context, Snapshot

StatePath = Tuple[str, ...]

# Callback Types
GuardFn = Callable[["Context", "Event"], Any]
ActionFn = Callable[["Context", "Event"], Mapping[str, Any]]
FieldReducer = Callable[["Context", "Event"], Any]
ServiceFn = Callable[["Context", "Event"], Awaitable[Any]]
Listener = Callable[["Snapshot"], None]
