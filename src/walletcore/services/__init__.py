"""Backend service boundary.

The orchestration core only depends on these structural interfaces. Each
service owns its own :class:`~walletcore.services.emitter.Emitter` and
internal state; the core subscribes to its events and calls its request
operations, nothing more.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from walletcore.models import AccountBalance, AccountNetwork, KeyringType


class EventSource(Protocol):
    def on(self, event: str, listener: Callable[[Any], Any]) -> Callable[[], None]: ...


class PreferenceService(Protocol):
    emitter: EventSource


class ChainService(Protocol):
    """Base-asset balances, transactions and network status.

    Emits ``accountBalance`` (:class:`AccountBalance`) and ``transaction``
    (:class:`~walletcore.models.EVMTransaction`).
    """

    emitter: EventSource

    async def add_account_to_track(self, account_network: AccountNetwork) -> None: ...

    async def get_accounts_to_track(self) -> list[AccountNetwork]: ...

    async def get_latest_base_account_balance(self, account_network: AccountNetwork) -> AccountBalance: ...


class IndexingService(Protocol):
    """Token balances and asset definitions.

    Emits ``accountBalance`` (:class:`AccountBalance`) and ``assets``
    (list of :class:`~walletcore.models.Asset`).
    """

    emitter: EventSource


class KeyringService(Protocol):
    """Key material. Emits ``keyrings`` (list of :class:`~walletcore.models.Keyring`)."""

    emitter: EventSource

    async def generate_new_keyring(self, keyring_type: KeyringType, password: str) -> Any: ...

    async def import_legacy_keyring(self, mnemonic: str, password: str) -> Any: ...


__all__ = [
    "ChainService",
    "EventSource",
    "IndexingService",
    "KeyringService",
    "PreferenceService",
]
