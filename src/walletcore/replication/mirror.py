"""Replica-side proxy store and an in-process loopback transport."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from walletcore.exceptions import MalformedEncoding, ReplicaChannelError
from walletcore.replication.messages import MessageKind, decode_message, encode_message
from walletcore.state.actions import Action
from walletcore.state.reducer import StateTree, root_reducer
from walletcore.state.store import Reducer

_logger = logging.getLogger(__name__)


class ReplicaMirror:
    """Rebuilds the canonical tree from the outbound replica stream.

    The first ``state`` message seeds the mirror; every ``action`` message
    is replayed through the same reducer the canonical store uses.
    """

    def __init__(self, reducer: Reducer = root_reducer) -> None:
        self._reducer = reducer
        self._state: StateTree | None = None
        self.actions_applied = 0

    @property
    def ready(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> StateTree:
        if self._state is None:
            raise RuntimeError("Replica has not received a state snapshot yet")
        return self._state

    def receive(self, text: str | bytes) -> None:
        kind, payload = decode_message(text)
        if kind == MessageKind.STATE:
            if not isinstance(payload, dict):
                raise MalformedEncoding("State snapshot is not an object")
            self._state = payload
            return
        if kind == MessageKind.ACTION:
            if self._state is None:
                _logger.debug("Ignoring action received before the first snapshot")
                return
            self._state = self._reducer(self._state, Action.model_validate(payload))
            self.actions_applied += 1
            return
        raise MalformedEncoding(f"Unexpected {kind} message on the outbound stream")

    @staticmethod
    def intent(action: Action) -> str:
        """Encode *action* as a dispatch message for the canonical store."""
        return encode_message(MessageKind.DISPATCH, action.model_dump())


class LoopbackChannel:
    """In-process replica: outbound messages feed a :class:`ReplicaMirror`.

    ``deliver`` is the hub's ``receive``; :meth:`dispatch` sends an intent
    back the same way a remote replica would.
    """

    def __init__(
        self,
        name: str = "loopback",
        *,
        deliver: Callable[..., Any] | None = None,
        mirror: ReplicaMirror | None = None,
    ) -> None:
        self.name = name
        self.mirror = mirror or ReplicaMirror()
        self.sent: list[str] = []
        self.closed = False
        self._deliver = deliver

    def bind(self, deliver: Callable[..., Any]) -> None:
        self._deliver = deliver

    async def send(self, text: str) -> None:
        if self.closed:
            raise ReplicaChannelError("Loopback replica is closed", channel=self.name)
        self.sent.append(text)
        self.mirror.receive(text)

    async def close(self) -> None:
        self.closed = True

    def dispatch(self, action: Action) -> Any:
        if self._deliver is None:
            raise ReplicaChannelError("Loopback replica is not bound to a hub", channel=self.name)
        return self._deliver(ReplicaMirror.intent(action), source=self.name)
