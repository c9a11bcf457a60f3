"""Dependency-ordered service startup.

Dependencies are expressed by threading handles into start calls, never
by awaiting at bootstrap time::

    preferences = bootstrapper.start_preferences()
    chain = bootstrapper.start_chain(preferences)
    indexing = bootstrapper.start_indexing(preferences, chain)
    keyring = bootstrapper.start_keyring()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from walletcore.exceptions import ServiceStartFailure
from walletcore.models import AccountNetwork
from walletcore.services import ChainService, IndexingService, KeyringService, PreferenceService
from walletcore.services.handle import ServiceHandle

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ServiceFactories:
    """Start functions for each backend service.

    Each receives the handles of its dependencies (not the services) and
    returns the started service.
    """

    preferences: Callable[[], Awaitable[PreferenceService]]
    chain: Callable[[ServiceHandle[PreferenceService]], Awaitable[ChainService]]
    indexing: Callable[
        [ServiceHandle[PreferenceService], ServiceHandle[ChainService]],
        Awaitable[IndexingService],
    ]
    keyring: Callable[[], Awaitable[KeyringService]]


@dataclass(frozen=True)
class ServiceHandles:
    preferences: ServiceHandle[PreferenceService]
    chain: ServiceHandle[ChainService]
    indexing: ServiceHandle[IndexingService]
    keyring: ServiceHandle[KeyringService]

    def all(self) -> tuple[ServiceHandle[Any], ...]:
        return (self.preferences, self.chain, self.indexing, self.keyring)


class ServiceBootstrapper:
    """Starts every service as an independent task and resolves its handle."""

    def __init__(
        self,
        factories: ServiceFactories,
        *,
        initial_account: AccountNetwork | None = None,
    ) -> None:
        self._factories = factories
        self._initial_account = initial_account
        self._tasks: set[asyncio.Task[Any]] = set()
        self._failures: dict[str, ServiceStartFailure] = {}

    @property
    def failures(self) -> dict[str, ServiceStartFailure]:
        """Start failures recorded so far, keyed by service name."""
        return dict(self._failures)

    def start_preferences(self) -> ServiceHandle[PreferenceService]:
        return self._start("preferences", self._factories.preferences)

    def start_chain(self, preferences: ServiceHandle[PreferenceService]) -> ServiceHandle[ChainService]:
        return self._start("chain", self._factories.chain, preferences)

    def start_indexing(
        self,
        preferences: ServiceHandle[PreferenceService],
        chain: ServiceHandle[ChainService],
    ) -> ServiceHandle[IndexingService]:
        """Start indexing, then register the initial tracked account.

        The handle resolves only after the registration, which itself waits
        for both the preferences and the chain handle.
        """

        async def start() -> IndexingService:
            service = await self._factories.indexing(preferences, chain)
            if self._initial_account is not None:
                await preferences
                chain_service = await chain
                await chain_service.add_account_to_track(self._initial_account)
                _logger.debug("Initial account %s tracked", self._initial_account.account)
            return service

        return self._start("indexing", start)

    def start_keyring(self) -> ServiceHandle[KeyringService]:
        return self._start("keyring", self._factories.keyring)

    def initialize_services(self) -> ServiceHandles:
        preferences = self.start_preferences()
        chain = self.start_chain(preferences)
        indexing = self.start_indexing(preferences, chain)
        keyring = self.start_keyring()
        return ServiceHandles(preferences=preferences, chain=chain, indexing=indexing, keyring=keyring)

    async def shutdown(self) -> None:
        """Cancel services that are still starting."""
        tasks = [task for task in self._tasks if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _start(self, name: str, factory: Callable[..., Awaitable[T]], *deps: Any) -> ServiceHandle[T]:
        handle: ServiceHandle[T] = ServiceHandle(name)
        task = asyncio.get_running_loop().create_task(_run_factory(factory, *deps), name=f"walletcore-start-{name}")
        self._tasks.add(task)

        def done(finished: asyncio.Task[T]) -> None:
            self._tasks.discard(finished)
            if finished.cancelled():
                _logger.debug("Start of %s service cancelled", name)
                return
            exc = finished.exception()
            if exc is not None:
                failure = ServiceStartFailure(f"{name} service failed to start: {exc}", service=name)
                failure.__cause__ = exc
                handle.record_failure(failure)
                self._failures[name] = failure
                _logger.error(
                    "%s service failed to start; dependents will not start",
                    name,
                    exc_info=(type(failure), failure, exc.__traceback__),
                )
                return
            handle.resolve(finished.result())
            _logger.debug("%s service ready", name)

        task.add_done_callback(done)
        return handle


async def _run_factory(factory: Callable[..., Awaitable[T]], *deps: Any) -> T:
    # Synchronous factory errors surface here, inside the start task.
    return await factory(*deps)
