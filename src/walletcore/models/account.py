"""Account tracking and balance models."""

from __future__ import annotations

from pydantic import field_validator

from walletcore.models._base import WalletBaseModel, normalize_address
from walletcore.models.network import AssetAmount, Network


class AccountNetwork(WalletBaseModel):
    """An account address on a specific network."""

    account: str
    network: Network

    @field_validator("account")
    @classmethod
    def _normalize_account(cls, value: str) -> str:
        return normalize_address(value)


class AccountBalance(WalletBaseModel):
    """A balance observation for one asset of one account.

    Emitted as ``accountBalance`` by both the chain service (base asset)
    and the indexing service (tokens).
    """

    account: str
    network: Network
    asset_amount: AssetAmount
    retrieved_at: int = 0
    """Epoch milliseconds when the balance was read."""

    @field_validator("account")
    @classmethod
    def _normalize_account(cls, value: str) -> str:
        return normalize_address(value)
