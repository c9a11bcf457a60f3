"""Transaction model."""

from __future__ import annotations

from pydantic import field_validator

from walletcore.models._base import WalletBaseModel, normalize_address
from walletcore.models.network import Network


class EVMTransaction(WalletBaseModel):
    """A transaction observed by the chain service.

    A transaction is confirmed once it carries a ``block_hash``; before
    that it has only been seen (e.g. in the mempool).
    """

    hash: str
    from_address: str
    to_address: str | None = None
    value: int = 0
    nonce: int = 0
    block_hash: str | None = None
    block_height: int | None = None
    network: Network

    @field_validator("hash", "from_address")
    @classmethod
    def _normalize_hex(cls, value: str) -> str:
        return normalize_address(value)

    @field_validator("to_address")
    @classmethod
    def _normalize_optional_hex(cls, value: str | None) -> str | None:
        return normalize_address(value) if value else None

    @property
    def is_confirmed(self) -> bool:
        """Whether the transaction references a confirmation block."""
        return bool(self.block_hash)
