"""Keyring models."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from walletcore.models._base import WalletBaseModel


class KeyringType(StrEnum):
    MNEMONIC_BIP39_S256 = "mnemonic#bip39:256"
    MNEMONIC_BIP39_S128 = "mnemonic#bip39:128"


class Keyring(WalletBaseModel):
    """Public view of a keyring: its id, type and derived addresses."""

    id: str | None = None
    type: KeyringType = KeyringType.MNEMONIC_BIP39_S256
    addresses: list[str] = Field(default_factory=list)
