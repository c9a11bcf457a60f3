"""Event bridge between resolved services and the canonical store.

For each service handle the bridge waits for the service, attaches the
declared subscriptions, and wires the UI intents that target that service.
The chain connection also hydrates state with already-tracked accounts.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from walletcore._constants import INTENT_ADD_ACCOUNT, INTENT_GENERATE_KEYRING, INTENT_IMPORT_LEGACY_KEYRING
from walletcore.exceptions import UnhandledIntentFailure
from walletcore.ingestion.aliases import import_legacy_keyring
from walletcore.ingestion.subscriptions import SubscriptionRegistry
from walletcore.models import AccountNetwork, KeyringType
from walletcore.services import ChainService
from walletcore.services.bootstrap import ServiceHandles
from walletcore.services.emitter import Emitter
from walletcore.state.accounts import load_account
from walletcore.state.store import Store

_logger = logging.getLogger(__name__)


async def _run_intent(intent: str, operation: Awaitable[Any]) -> None:
    try:
        await operation
    except Exception as exc:
        raise UnhandledIntentFailure(f"{intent} failed: {exc}", intent=intent) from exc


class EventBridge:
    """Connects service events to store actions and intents to services."""

    def __init__(
        self,
        store: Store,
        handles: ServiceHandles,
        intents: Emitter,
        *,
        keyring_password: str,
        legacy_mnemonic: str | None = None,
        registry: SubscriptionRegistry | None = None,
    ) -> None:
        self._store = store
        self._handles = handles
        self._intents = intents
        self._keyring_password = keyring_password
        self._legacy_mnemonic = legacy_mnemonic
        self._registry = registry or SubscriptionRegistry(store.dispatch)
        self._intent_unsubscribers: list[Callable[[], None]] = []
        self._tasks: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> list[asyncio.Task[None]]:
        """Schedule every service connection. Each waits for its own handle."""
        return [
            self._spawn(self.connect_indexing_service(), "connect-indexing"),
            self._spawn(self.connect_keyring_service(), "connect-keyring"),
            self._spawn(self.connect_chain_service(), "connect-chain"),
        ]

    async def close(self) -> None:
        tasks = [task for task in self._tasks if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._registry.detach_all()
        unsubscribers, self._intent_unsubscribers = self._intent_unsubscribers, []
        for unsubscribe in unsubscribers:
            unsubscribe()

    # ------------------------------------------------------------------
    # Service connections
    # ------------------------------------------------------------------

    async def connect_chain_service(self) -> None:
        chain = await self._handles.chain
        self._registry.attach("chain", chain.emitter)
        self._on_intent(
            INTENT_ADD_ACCOUNT,
            lambda account_network: chain.add_account_to_track(account_network),
        )
        await self.hydrate_tracked_accounts(chain)

    async def connect_indexing_service(self) -> None:
        indexing = await self._handles.indexing
        self._registry.attach("indexing", indexing.emitter)

    async def connect_keyring_service(self) -> None:
        keyring = await self._handles.keyring
        self._registry.attach("keyring", keyring.emitter)
        # TODO: unlock keyrings from a UI prompt instead of the configured password.
        password = self._keyring_password
        self._on_intent(
            INTENT_GENERATE_KEYRING,
            lambda _payload: keyring.generate_new_keyring(KeyringType.MNEMONIC_BIP39_S256, password),
        )
        self._on_intent(
            INTENT_IMPORT_LEGACY_KEYRING,
            lambda mnemonic: keyring.import_legacy_keyring(mnemonic, password),
        )
        if self._legacy_mnemonic:
            self._store.dispatch(import_legacy_keyring(self._legacy_mnemonic))

    async def hydrate_tracked_accounts(self, chain: ChainService) -> list[AccountNetwork]:
        """Mark every already-tracked account as loading, then refresh balances.

        All loading actions are dispatched before the first refresh request,
        so a fast balance response always finds its account tracked.
        """
        existing = await chain.get_accounts_to_track()
        for account_network in existing:
            self._store.dispatch(load_account(account_network.account))
        for account_network in existing:
            self._spawn(
                self._refresh_balance(chain, account_network),
                f"refresh-{account_network.account}",
            )
        _logger.debug("Hydrated %d tracked accounts", len(existing))
        return list(existing)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _refresh_balance(self, chain: ChainService, account_network: AccountNetwork) -> None:
        # The resulting balance arrives as an ``accountBalance`` event.
        try:
            await chain.get_latest_base_account_balance(account_network)
        except Exception:
            _logger.warning("Balance refresh for %s failed", account_network.account, exc_info=True)

    def _on_intent(self, intent: str, operation: Callable[[Any], Awaitable[Any]]) -> None:
        def listener(payload: Any) -> Awaitable[None]:
            return _run_intent(intent, operation(payload))

        self._intent_unsubscribers.append(self._intents.on(intent, listener))

    def _spawn(self, coro: Awaitable[None], name: str) -> asyncio.Task[None]:
        task = asyncio.ensure_future(coro)
        task.set_name(f"walletcore-{name}")
        self._tasks.add(task)

        def done(finished: asyncio.Task[None]) -> None:
            self._tasks.discard(finished)
            if not finished.cancelled() and finished.exception() is not None:
                exc = finished.exception()
                _logger.error("Bridge task %s failed", name, exc_info=exc)

        task.add_done_callback(done)
        return task
