"""Account slice: tracked accounts, their balances, and transactions."""

from __future__ import annotations

from typing import Any

from walletcore._constants import ACCOUNT_LOADING
from walletcore.models import AccountBalance, EVMTransaction
from walletcore.models._base import normalize_address
from walletcore.state.policy import (
    TransactionStatus,
    classify_transaction,
    merge_transaction_status,
    should_mark_loading,
)
from walletcore.state.slice import Slice


def _initial_state() -> dict[str, Any]:
    return {"accounts_data": {}, "transactions": {}}


account_slice = Slice("account", _initial_state)

load_account = account_slice.action("loadAccount", prepare=normalize_address)
update_account_balance = account_slice.action("updateAccountBalance", prepare=AccountBalance.to_state)
transaction_seen = account_slice.action("transactionSeen", prepare=EVMTransaction.to_state)
transaction_confirmed = account_slice.action("transactionConfirmed", prepare=EVMTransaction.to_state)


@account_slice.reducer(load_account)
def _load_account(draft: dict[str, Any], payload: Any) -> None:
    account = normalize_address(payload)
    accounts_data = draft["accounts_data"]
    if should_mark_loading(accounts_data.get(account)):
        accounts_data[account] = ACCOUNT_LOADING


@account_slice.reducer(update_account_balance)
def _update_account_balance(draft: dict[str, Any], payload: Any) -> None:
    balance = AccountBalance.model_validate(payload)
    accounts_data = draft["accounts_data"]
    existing = accounts_data.get(balance.account)

    entry: dict[str, Any]
    if isinstance(existing, dict):
        entry = existing
    else:
        entry = {"account": balance.account, "network": balance.network.to_state(), "balances": {}}
        accounts_data[balance.account] = entry

    symbol = balance.asset_amount.asset.symbol
    entry["balances"][symbol] = {
        **balance.asset_amount.to_state(),
        "retrieved_at": balance.retrieved_at,
    }


def _record_transaction(draft: dict[str, Any], transaction: EVMTransaction, incoming: TransactionStatus) -> None:
    transactions = draft["transactions"]
    existing = transactions.get(transaction.hash)
    existing_status = existing.get("status") if isinstance(existing, dict) else None
    status = merge_transaction_status(existing_status, incoming)
    if status != incoming:
        return
    transactions[transaction.hash] = {"status": str(status), "transaction": transaction.to_state()}


@account_slice.reducer(transaction_seen)
def _transaction_seen(draft: dict[str, Any], payload: Any) -> None:
    transaction = EVMTransaction.model_validate(payload)
    _record_transaction(draft, transaction, classify_transaction(transaction.block_hash))


@account_slice.reducer(transaction_confirmed)
def _transaction_confirmed(draft: dict[str, Any], payload: Any) -> None:
    transaction = EVMTransaction.model_validate(payload)
    _record_transaction(draft, transaction, TransactionStatus.CONFIRMED)
