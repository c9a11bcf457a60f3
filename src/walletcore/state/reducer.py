"""Root reducer combining every slice."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from walletcore.state.accounts import account_slice
from walletcore.state.actions import Action
from walletcore.state.assets import assets_slice
from walletcore.state.keyrings import keyrings_slice
from walletcore.state.slice import Slice

SLICES: tuple[Slice, ...] = (account_slice, assets_slice, keyrings_slice)

StateTree = dict[str, Any]


def combine_slices(slices: Sequence[Slice]):
    """Build a root reducer from *slices*.

    The returned reducer is pure and total: it fills missing branches with
    their initial state, keeps top-level keys it does not own (written by
    a newer or older version of the store), and returns the very same
    object when no branch changed.
    """

    def reduce(state: Mapping[str, Any] | None, action: Action) -> StateTree:
        previous: StateTree = dict(state) if state is not None else {}
        changed = state is None
        next_state: StateTree = dict(previous)
        for slice_ in slices:
            branch = previous.get(slice_.name)
            reduced = slice_.reduce(branch, action)
            if reduced is not branch:
                changed = True
            next_state[slice_.name] = reduced
        if not changed and isinstance(state, dict):
            return state
        return next_state

    return reduce


root_reducer = combine_slices(SLICES)
