# flowhsm/core/guards.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Mapping, Optional

from flowhsm.core.errors import GuardError
from flowhsm.interfaces.types import GuardFn

if TYPE_CHECKING:
    from flowhsm.core.events import Event
    from flowhsm.runtime.context import Context


class GuardRegistry:
    """
    Maps guard names to pure predicates over (context, event). Guards decide
    transition eligibility and must not have side effects.
    """

    def __init__(self, guards: Optional[Mapping[str, GuardFn]] = None) -> None:
        self._guards: Dict[str, GuardFn] = dict(guards or {})

    def register(self, name: str, fn: GuardFn) -> None:
        """
        Register a named guard. Overwrites if already registered.
        """
        self._guards[name] = fn

    def check(self, name: str, context: "Context", event: "Event") -> bool:
        """
        Evaluate a guard. The truthiness of the predicate's result decides.

        :raises KeyError: If the guard is not registered.
        :raises GuardError: If the predicate throws.
        """
        fn = self._guards[name]
        try:
            return bool(fn(context, event))
        except Exception as e:
            raise GuardError(name, e) from e

    def has(self, name: str) -> bool:
        return name in self._guards

    def names(self) -> List[str]:
        return list(self._guards)
