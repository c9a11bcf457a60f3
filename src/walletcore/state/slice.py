"""Slice: one top-level branch of the state tree and its case reducers."""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from walletcore.state.actions import Action, ActionCreator

_logger = logging.getLogger(__name__)

CaseReducer = Callable[[dict[str, Any], Any], None]


class Slice:
    """A named branch of state plus the action kinds that change it.

    Case reducers receive a private deep copy of the branch (the draft) and
    mutate it in place; the previous version is never touched. Action kinds
    the slice does not know return the branch unchanged (same object).
    """

    def __init__(self, name: str, initial_state: Callable[[], dict[str, Any]]) -> None:
        self.name = name
        self._initial_state = initial_state
        self._cases: dict[str, CaseReducer] = {}

    def initial_state(self) -> dict[str, Any]:
        return self._initial_state()

    def action(self, case: str, prepare: Callable[..., Any] | None = None) -> ActionCreator:
        """Declare an action kind ``<slice>/<case>`` and return its creator."""
        return ActionCreator(f"{self.name}/{case}", prepare)

    def reducer(self, creator: ActionCreator) -> Callable[[CaseReducer], CaseReducer]:
        """Register the case reducer for *creator*'s action kind."""

        def register(fn: CaseReducer) -> CaseReducer:
            if creator.type in self._cases:
                raise ValueError(f"duplicate reducer for {creator.type}")
            self._cases[creator.type] = fn
            return fn

        return register

    def handles(self, action_type: str) -> bool:
        return action_type in self._cases

    def reduce(self, state: dict[str, Any] | None, action: Action) -> dict[str, Any]:
        if state is None:
            state = self.initial_state()
        case = self._cases.get(action.type)
        if case is None:
            return state

        # Hydrated branches from other versions may lack keys.
        base = {**self.initial_state(), **state} if isinstance(state, dict) else self.initial_state()
        draft = copy.deepcopy(base)
        try:
            case(draft, action.payload)
        except (ValidationError, TypeError, ValueError, LookupError, AttributeError):
            # Malformed payload or branch for a known kind: leave this branch as it was.
            _logger.warning("Ignoring %s with invalid payload", action.type, exc_info=True)
            return state
        return draft
