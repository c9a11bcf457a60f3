"""Fan-out of store actions to replicas, and fan-in of replica intents."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import ValidationError

from walletcore.exceptions import MalformedEncoding, ReplicaChannelError
from walletcore.replication.messages import MessageKind, decode_message, encode_message
from walletcore.state.actions import Action
from walletcore.state.store import Dispatch, Store

_logger = logging.getLogger(__name__)


class ReplicaChannel(Protocol):
    """One replica connection. Inbound text is delivered to
    :meth:`ReplicationHub.receive` by the transport."""

    name: str

    async def send(self, text: str) -> None: ...

    async def close(self) -> None: ...


@dataclass
class _Peer:
    channel: ReplicaChannel
    queue: asyncio.Queue[str]
    task: asyncio.Task[None] | None = None


class ReplicationHub:
    """Middleware stage that mirrors every applied action to attached replicas.

    Each replica gets its own ordered outbound queue, so one slow or broken
    replica never delays dispatch or other replicas. Inbound intents are
    re-dispatched through the same store; there is no second writer.
    """

    def __init__(self) -> None:
        self._store: Store | None = None
        self._peers: dict[str, _Peer] = {}

    # ------------------------------------------------------------------
    # Middleware
    # ------------------------------------------------------------------

    def __call__(self, store: Store, next_dispatch: Dispatch) -> Dispatch:
        self._store = store

        def dispatch(action: Action) -> Action:
            result = next_dispatch(action)
            if self._peers:
                self._broadcast(MessageKind.ACTION, result.model_dump())
            return result

        return dispatch

    # ------------------------------------------------------------------
    # Replicas
    # ------------------------------------------------------------------

    @property
    def replica_names(self) -> list[str]:
        return list(self._peers)

    def attach(self, channel: ReplicaChannel) -> None:
        """Start mirroring to *channel*, beginning with a full state snapshot."""
        store = self._require_store()
        if channel.name in self._peers:
            raise ValueError(f"Replica {channel.name!r} already attached")
        peer = _Peer(channel=channel, queue=asyncio.Queue())
        self._peers[channel.name] = peer
        self._enqueue(peer, MessageKind.STATE, store.get_state())
        peer.task = asyncio.get_running_loop().create_task(
            self._sender(peer), name=f"walletcore-replica-{channel.name}"
        )
        _logger.debug("Replica %s attached", channel.name)

    async def detach(self, name: str) -> None:
        peer = self._peers.pop(name, None)
        if peer is None:
            return
        if peer.task is not None and peer.task is not asyncio.current_task():
            peer.task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await peer.task
        try:
            await peer.channel.close()
        except ReplicaChannelError:
            _logger.debug("Closing replica %s failed", name, exc_info=True)
        _logger.debug("Replica %s detached", name)

    async def flush(self) -> None:
        """Wait until every queued message has been handed to its transport."""
        for peer in list(self._peers.values()):
            if peer.task is not None and not peer.task.done():
                await peer.queue.join()

    async def close(self) -> None:
        await self.flush()
        for name in list(self._peers):
            await self.detach(name)

    def receive(self, text: str | bytes, *, source: str = "") -> Action | None:
        """Handle an inbound message from a replica.

        Only ``dispatch`` messages are accepted. Anything undecodable is
        dropped with a warning and never reaches the store.
        """
        store = self._require_store()
        try:
            kind, payload = decode_message(text)
            if kind != MessageKind.DISPATCH:
                raise MalformedEncoding(f"Replicas may only send dispatch messages, got {kind}")
            if not isinstance(payload, Mapping):
                raise MalformedEncoding("Dispatch payload is not an action")
            action = Action.model_validate(payload)
        except (MalformedEncoding, ValidationError):
            _logger.warning("Dropping malformed message from replica %s", source or "?", exc_info=True)
            return None
        try:
            return store.dispatch(action)
        except Exception:
            _logger.exception("Dispatch of %s from replica %s failed", action.type, source or "?")
            return None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_store(self) -> Store:
        if self._store is None:
            raise RuntimeError("ReplicationHub is not installed as store middleware")
        return self._store

    def _broadcast(self, kind: MessageKind, payload: Any) -> None:
        for peer in self._peers.values():
            self._enqueue(peer, kind, payload)

    def _enqueue(self, peer: _Peer, kind: MessageKind, payload: Any) -> None:
        try:
            text = encode_message(kind, payload)
        except (TypeError, ValueError):
            _logger.warning("Cannot encode %s message for replica %s", kind, peer.channel.name, exc_info=True)
            return
        peer.queue.put_nowait(text)

    async def _sender(self, peer: _Peer) -> None:
        while True:
            text = await peer.queue.get()
            try:
                await peer.channel.send(text)
            except ReplicaChannelError:
                _logger.warning("Replica %s send failed; detaching", peer.channel.name, exc_info=True)
                peer.queue.task_done()
                self._drain(peer)
                self._peers.pop(peer.channel.name, None)
                return
            except Exception:
                _logger.exception("Replica %s send raised", peer.channel.name)
            peer.queue.task_done()

    @staticmethod
    def _drain(peer: _Peer) -> None:
        while not peer.queue.empty():
            peer.queue.get_nowait()
            peer.queue.task_done()
