"""Declared table of service events and the actions they become.

Keeping the mapping in one table makes it auditable and testable without
any real service::

    (service, event)            -> action
    chain    accountBalance     -> account/updateAccountBalance
    chain    transaction        -> account/transactionConfirmed | transactionSeen
    indexing accountBalance     -> account/updateAccountBalance
    indexing assets             -> assets/assetsLoaded
    keyring  keyrings           -> keyrings/updateKeyrings
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from walletcore._redact import redact_for_log
from walletcore.models import AccountBalance, Asset, EVMTransaction, Keyring
from walletcore.services import EventSource
from walletcore.state.accounts import transaction_confirmed, transaction_seen, update_account_balance
from walletcore.state.actions import Action
from walletcore.state.assets import assets_loaded
from walletcore.state.keyrings import update_keyrings

_logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _coerce(model: type[M], payload: Any) -> M:
    return payload if isinstance(payload, model) else model.model_validate(payload)


def balance_action(payload: Any) -> Action:
    return update_account_balance(_coerce(AccountBalance, payload))


def transaction_action(payload: Any) -> Action:
    transaction = _coerce(EVMTransaction, payload)
    if transaction.is_confirmed:
        return transaction_confirmed(transaction)
    return transaction_seen(transaction)


def assets_action(payload: Iterable[Any]) -> Action:
    return assets_loaded([_coerce(Asset, item) for item in payload])


def keyrings_action(payload: Iterable[Any]) -> Action:
    return update_keyrings([_coerce(Keyring, item) for item in payload])


@dataclass(frozen=True)
class Subscription:
    service: str
    event: str
    to_action: Callable[[Any], Action]


SUBSCRIPTIONS: tuple[Subscription, ...] = (
    Subscription("chain", "accountBalance", balance_action),
    Subscription("chain", "transaction", transaction_action),
    Subscription("indexing", "accountBalance", balance_action),
    Subscription("indexing", "assets", assets_action),
    Subscription("keyring", "keyrings", keyrings_action),
)


class SubscriptionRegistry:
    """Attaches the declared table to live event sources.

    Each event becomes exactly one dispatch. A payload that cannot be
    converted, or a dispatch that raises, is logged and contained in that
    listener.
    """

    def __init__(
        self,
        dispatch: Callable[[Action], Any],
        table: Iterable[Subscription] = SUBSCRIPTIONS,
    ) -> None:
        self._dispatch = dispatch
        self._table = tuple(table)
        self._unsubscribers: list[Callable[[], None]] = []

    def for_service(self, service: str) -> list[Subscription]:
        return [sub for sub in self._table if sub.service == service]

    def attach(self, service: str, source: EventSource) -> int:
        """Subscribe every declared event of *service* on *source*."""
        subscriptions = self.for_service(service)
        for sub in subscriptions:
            self._unsubscribers.append(source.on(sub.event, self._listener(sub)))
        _logger.debug("Attached %d %s subscriptions", len(subscriptions), service)
        return len(subscriptions)

    def detach_all(self) -> None:
        unsubscribers, self._unsubscribers = self._unsubscribers, []
        for unsubscribe in unsubscribers:
            unsubscribe()

    def _listener(self, sub: Subscription) -> Callable[[Any], None]:
        def listener(payload: Any) -> None:
            try:
                action = sub.to_action(payload)
            except (ValidationError, TypeError, ValueError):
                _logger.warning(
                    "Dropping %s %s event with invalid payload %s",
                    sub.service,
                    sub.event,
                    redact_for_log(payload),
                    exc_info=True,
                )
                return
            try:
                self._dispatch(action)
            except Exception:
                _logger.exception("Dispatch of %s from %s %s failed", action.type, sub.service, sub.event)

        return listener
