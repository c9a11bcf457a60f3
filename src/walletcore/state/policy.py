"""Deterministic state merge policy.

This module contains no payload parsing. The slices validate payloads and
ask these rules how an update combines with what is already in state.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from walletcore._constants import ACCOUNT_LOADING


class TransactionStatus(StrEnum):
    SEEN = "seen"
    CONFIRMED = "confirmed"


class ImportStatus(StrEnum):
    IDLE = "idle"
    PENDING = "pending"
    DONE = "done"


def is_loading(entry: Any) -> bool:
    return entry == ACCOUNT_LOADING


def should_mark_loading(existing: Any) -> bool:
    """Only untracked accounts transition to loading.

    A populated balance entry is never replaced by the loading marker.
    """
    return existing is None


def classify_transaction(block_hash: str | None) -> TransactionStatus:
    """A confirmation block reference always means confirmed."""
    return TransactionStatus.CONFIRMED if block_hash else TransactionStatus.SEEN


def merge_transaction_status(
    existing: TransactionStatus | str | None,
    incoming: TransactionStatus,
) -> TransactionStatus:
    """Confirmed is terminal: a late seen observation cannot downgrade it."""
    if existing == TransactionStatus.CONFIRMED:
        return TransactionStatus.CONFIRMED
    return incoming
