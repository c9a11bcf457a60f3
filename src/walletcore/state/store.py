"""Canonical in-memory state store.

This is the only component allowed to hold or replace the state tree.
Everything else reads snapshots via :meth:`Store.get_state` or submits
actions via :meth:`Store.dispatch`.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol

from walletcore._redact import redact_for_log
from walletcore.state.actions import INIT, Action
from walletcore.state.reducer import StateTree, root_reducer

_logger = logging.getLogger(__name__)

Reducer = Callable[[Mapping[str, Any] | None, Action], StateTree]
Dispatch = Callable[[Action], Action]
Listener = Callable[[], None]


class Middleware(Protocol):
    """A passthrough stage around the store's dispatch path.

    Called once when the store is built with the store and the next stage;
    returns the dispatch function for this stage.
    """

    def __call__(self, store: Store, next_dispatch: Dispatch) -> Dispatch: ...


class Store:
    """Reducer-driven store for the canonical state tree.

    Given the same initial state and the same sequence of actions the store
    always produces the same tree: the reducer is the only input.
    """

    def __init__(
        self,
        reducer: Reducer = root_reducer,
        *,
        preloaded_state: Mapping[str, Any] | None = None,
        middleware: Sequence[Middleware] = (),
    ) -> None:
        self._reducer = reducer
        self._state: StateTree = reducer(copy.deepcopy(preloaded_state), Action(type=INIT))
        self._version = 0
        self._reducing = False
        self._listeners: list[Listener] = []

        dispatch: Dispatch = self._base_dispatch
        for stage in reversed(middleware):
            dispatch = stage(self, dispatch)
        self._dispatch = dispatch

    @property
    def version(self) -> int:
        """Number of actions reduced since the store was created."""
        return self._version

    def get_state(self) -> StateTree:
        """Return a deep copy of the current state tree."""
        return copy.deepcopy(self._state)

    def dispatch(self, action: Action) -> Action:
        """Run *action* through the middleware chain and the reducer."""
        return self._dispatch(action)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* after every reduced action. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _base_dispatch(self, action: Action) -> Action:
        if self._reducing:
            raise RuntimeError("Reducers may not dispatch actions")
        _logger.debug("dispatch %s payload=%s", action.type, redact_for_log(action.payload))

        self._reducing = True
        try:
            self._state = self._reducer(self._state, action)
            self._version += 1
        finally:
            self._reducing = False

        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                _logger.exception("Store listener failed after %s", action.type)
        return action
