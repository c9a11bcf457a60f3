"""Actions: the only legal mutation path into the store."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

#: Dispatched once when a store is created so every slice fills in its
#: initial state. No slice handles it.
INIT = "@@walletcore/INIT"


class Action(BaseModel):
    """A named, serializable request to mutate the store.

    ``payload`` is always a plain tree (dicts, lists, scalars, ints of any
    size) so an action can be encoded for persistence and replication.
    """

    model_config = ConfigDict(frozen=True)

    type: str
    payload: Any = None

    @field_validator("type")
    @classmethod
    def _non_empty_type(cls, value: str) -> str:
        kind = value.strip()
        if not kind:
            raise ValueError("action type must be non-empty")
        return kind


class ActionCreator:
    """Builds actions of a single type.

    ``prepare`` converts the caller's arguments into the plain payload.
    """

    def __init__(self, type_: str, prepare: Callable[..., Any] | None = None) -> None:
        self.type = type_
        self._prepare = prepare

    def __call__(self, *args: Any, **kwargs: Any) -> Action:
        if self._prepare is None:
            payload = args[0] if args else None
        else:
            payload = self._prepare(*args, **kwargs)
        return Action(type=self.type, payload=payload)

    def match(self, action: Action) -> bool:
        return action.type == self.type

    def __repr__(self) -> str:
        return f"ActionCreator({self.type!r})"
