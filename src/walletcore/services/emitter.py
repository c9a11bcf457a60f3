"""Named-event emitter used by services and by the store's intent channel."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

Listener = Callable[[Any], Any]


class Emitter:
    """Subscribe-by-name event emitter.

    Listeners may be plain callables or coroutine functions. A listener that
    raises is logged and does not stop the remaining listeners. Coroutines
    are scheduled as tasks on the running loop; their failures are logged
    when the task finishes (nobody awaits them).
    """

    def __init__(self, name: str = "", *, logger: logging.Logger | None = None) -> None:
        self.name = name
        self._logger = logger or logging.getLogger(__name__)
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._tasks: set[asyncio.Task[Any]] = set()

    def on(self, event: str, listener: Listener) -> Callable[[], None]:
        """Register *listener* for *event*. Returns an unsubscribe callable."""
        self._listeners[event].append(listener)

        def unsubscribe() -> None:
            self.off(event, listener)

        return unsubscribe

    def off(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, payload: Any = None) -> None:
        """Call every listener of *event* with *payload*."""
        for listener in list(self._listeners.get(event, ())):
            try:
                result = listener(payload)
            except Exception:
                self._logger.exception("%s listener for %r failed", self.name or "emitter", event)
                continue
            if inspect.isawaitable(result):
                self._track(event, result)

    def _track(self, event: str, awaitable: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)

        def done(finished: asyncio.Task[Any]) -> None:
            self._tasks.discard(finished)
            if finished.cancelled():
                return
            exc = finished.exception()
            if exc is not None:
                self._logger.error(
                    "%s listener for %r failed",
                    self.name or "emitter",
                    event,
                    exc_info=(type(exc), exc, exc.__traceback__),
                )

        task.add_done_callback(done)

    async def drain(self) -> None:
        """Wait until every listener task scheduled so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel_pending(self) -> None:
        for task in list(self._tasks):
            task.cancel()
