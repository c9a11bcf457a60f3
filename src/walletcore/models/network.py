"""Network and asset models."""

from __future__ import annotations

from pydantic import Field, field_validator

from walletcore.models._base import WalletBaseModel


class Asset(WalletBaseModel):
    """A fungible asset definition."""

    symbol: str
    """Ticker symbol (e.g. ``"ETH"``). Used as the asset's identity in state."""
    name: str = ""
    decimals: int = Field(default=18, ge=0)

    @field_validator("symbol")
    @classmethod
    def _normalize_symbol(cls, value: str) -> str:
        symbol = value.strip()
        if not symbol:
            raise ValueError("symbol must be non-empty")
        return symbol


class AssetAmount(WalletBaseModel):
    """An exact amount of an asset in its smallest unit.

    ``amount`` is an arbitrary-precision integer; wei-scale balances are
    routinely above 2**53.
    """

    asset: Asset
    amount: int


class Network(WalletBaseModel):
    """A chain the wallet can track accounts on."""

    name: str
    family: str = "EVM"
    chain_id: str = ""
    base_asset: Asset


ETH = Asset(symbol="ETH", name="Ether", decimals=18)

ETHEREUM = Network(name="Ethereum", family="EVM", chain_id="1", base_asset=ETH)
