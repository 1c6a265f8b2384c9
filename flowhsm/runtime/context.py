"""
Session context and snapshots, owned by a single Interpreter.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

from ..interfaces.types import StatePath


class Context(Mapping):
    """
    Immutable record of accumulated session data. Updates never mutate an
    existing instance; ``update`` returns a new Context so observers holding an
    earlier snapshot never see a partially applied change.
    """

    __slots__ = ("_fields",)

    def __init__(self, fields: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        merged = dict(fields or {})
        merged.update(kwargs)
        self._fields: Dict[str, Any] = merged

    def __getitem__(self, key: str) -> Any:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._fields[name]
        except KeyError:
            raise AttributeError(name) from None

    def update(self, partial: Mapping[str, Any]) -> "Context":
        """Return a new context with the given fields replaced."""
        merged = dict(self._fields)
        merged.update(partial)
        return Context(merged)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._fields)

    def __repr__(self) -> str:
        return f"Context({self._fields!r})"


@dataclass(frozen=True)
class Snapshot:
    """
    Observable result of a macrostep: the active state path and the context.
    """

    value: StatePath
    context: Context
    done: bool = False

    @property
    def state_id(self) -> str:
        """Dotted id of the active leaf, e.g. ``"newTicket.pending"``."""
        return ".".join(self.value)

    def matches(self, state_id: str) -> bool:
        """
        True when ``state_id`` names the active leaf or one of its ancestors.
        """
        parts = tuple(state_id.split(".")) if state_id else ()
        return self.value[: len(parts)] == parts

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.state_id, "context": self.context.to_dict()}
