"""Snapshot persistence around the store's dispatch path.

After every dispatch the full state tree is encoded with the numeric-safe
codec and handed to a :class:`SnapshotWriter`, which writes it to durable
storage in the background. Each write replaces the previous snapshot, so
bursts of dispatches collapse into one write of the latest tree. A failed
write leaves the state unpersisted until the next successful one; it never
blocks or fails a dispatch.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from walletcore import codec
from walletcore._storage import StateStorage
from walletcore.exceptions import MalformedEncoding, StateStorageError
from walletcore.state.actions import Action
from walletcore.state.store import Dispatch, Store

_logger = logging.getLogger(__name__)


async def load_persisted_state(storage: StateStorage, key: str) -> dict[str, Any] | None:
    """Read and decode the persisted snapshot.

    Returns ``None`` (start empty) when there is no snapshot or it cannot be
    read or decoded.
    """
    try:
        text = await storage.get(key)
    except StateStorageError:
        _logger.warning("Reading persisted state failed; starting empty", exc_info=True)
        return None
    if text is None:
        return None
    try:
        state = codec.decode(text)
    except MalformedEncoding:
        _logger.warning("Persisted state is malformed; starting empty", exc_info=True)
        return None
    if not isinstance(state, dict):
        _logger.warning("Persisted state is not an object; starting empty")
        return None
    _logger.debug("Hydrated persisted state with branches %s", sorted(state))
    return state


class SnapshotWriter:
    """Background single writer for encoded snapshots."""

    def __init__(self, storage: StateStorage, key: str) -> None:
        self._storage = storage
        self._key = key
        self._pending: str | None = None
        self._wakeup = asyncio.Event()
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self.writes = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="walletcore-snapshot-writer")

    def submit(self, text: str) -> None:
        """Queue *text* as the next snapshot, replacing any unwritten one."""
        self._pending = text
        self._wakeup.set()

    async def flush(self) -> None:
        """Write the pending snapshot now, if there is one."""
        async with self._lock:
            text, self._pending = self._pending, None
            if text is None:
                return
            try:
                await self._storage.set(self._key, text)
                self.writes += 1
            except Exception:
                _logger.warning("Persisting state failed; will retry on next change", exc_info=True)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self.flush()

    async def _run(self) -> None:
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            await self.flush()


class PersistenceMiddleware:
    """Encodes the full state after each dispatch and submits it for writing."""

    def __init__(self, writer: SnapshotWriter, *, enabled: bool = True) -> None:
        self._writer = writer
        self._enabled = enabled

    def __call__(self, store: Store, next_dispatch: Dispatch) -> Dispatch:
        def dispatch(action: Action) -> Action:
            result = next_dispatch(action)
            if self._enabled:
                try:
                    text = codec.encode(store.get_state())
                except (TypeError, ValueError):
                    _logger.warning("State after %s is not encodable; not persisted", action.type, exc_info=True)
                else:
                    self._writer.submit(text)
            return result

        return dispatch
