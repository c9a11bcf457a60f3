"""Single-assignment handles to services that are still starting."""

from __future__ import annotations

import asyncio
from collections.abc import Generator
from typing import Any, Generic, TypeVar

from walletcore.exceptions import ServiceStartFailure

T = TypeVar("T")


class ServiceHandle(Generic[T]):
    """Deferred reference to a service instance.

    The handle starts pending and is resolved exactly once, when the
    service finishes starting. Awaiting it suspends until then. A failed
    start only records :attr:`failure`; the handle stays pending, so
    dependents wait indefinitely (there is no timeout unless the caller
    passes one to :meth:`wait`).
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._future: asyncio.Future[T] | None = None
        self._value: T | None = None
        self._resolved = False
        self._failure: ServiceStartFailure | None = None

    def __repr__(self) -> str:
        state = "ready" if self._resolved else ("failed" if self._failure else "pending")
        return f"<ServiceHandle {self.name} {state}>"

    @property
    def done(self) -> bool:
        return self._resolved

    @property
    def failure(self) -> ServiceStartFailure | None:
        return self._failure

    def resolve(self, service: T) -> None:
        if self._resolved:
            raise RuntimeError(f"Service handle {self.name!r} already resolved")
        self._value = service
        self._resolved = True
        if self._future is not None and not self._future.done():
            self._future.set_result(service)

    def record_failure(self, failure: ServiceStartFailure) -> None:
        self._failure = failure

    def result(self) -> T:
        """Return the service without waiting; raises if not ready."""
        if not self._resolved:
            raise RuntimeError(f"Service handle {self.name!r} is not ready")
        return self._value  # type: ignore[return-value]

    async def wait(self, timeout: float | None = None) -> T:
        if self._resolved:
            return self._value  # type: ignore[return-value]
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        # Shield: a cancelled waiter must not cancel the shared future.
        return await asyncio.wait_for(asyncio.shield(self._future), timeout)

    def __await__(self) -> Generator[Any, None, T]:
        return self.wait().__await__()
