"""Tests for domain payload parsing with WalletBaseModel."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from walletcore.models import ETH, ETHEREUM, AccountBalance, AccountNetwork, Asset, EVMTransaction, Keyring, KeyringType
from walletcore.state.actions import Action
from walletcore.state.policy import (
    TransactionStatus,
    classify_transaction,
    is_loading,
    merge_transaction_status,
    should_mark_loading,
)

# ------------------------------------------------------------------
# Models
# ------------------------------------------------------------------


class TestWalletBaseModel:
    def test_camel_case_keys_are_accepted(self) -> None:
        balance = AccountBalance.model_validate(
            {
                "account": "  0xABC ",
                "network": ETHEREUM.to_state(),
                "assetAmount": {"asset": {"symbol": "ETH", "decimals": 18}, "amount": "123456789012345678901234567890"},
                "retrievedAt": 5,
            }
        )
        assert balance.account == "0xabc"
        assert balance.asset_amount.amount == 123456789012345678901234567890
        assert balance.retrieved_at == 5

    def test_to_state_is_snake_case_and_exact(self) -> None:
        state = AccountBalance(account="0xA", network=ETHEREUM, asset_amount={"asset": ETH, "amount": 2**70}).to_state()
        assert state["asset_amount"]["amount"] == 2**70
        assert state["network"]["base_asset"]["symbol"] == "ETH"

    def test_models_are_frozen(self) -> None:
        with pytest.raises(ValidationError):
            ETH.symbol = "BTC"  # type: ignore[misc]

    def test_empty_addresses_are_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AccountNetwork(account="   ", network=ETHEREUM)

    def test_negative_decimals_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Asset(symbol="BAD", decimals=-1)

    def test_keyring_type_values(self) -> None:
        keyring = Keyring.model_validate({"id": "k", "type": "mnemonic#bip39:128"})
        assert keyring.type is KeyringType.MNEMONIC_BIP39_S128
        assert keyring.to_state()["type"] == "mnemonic#bip39:128"

    def test_transaction_confirmation(self) -> None:
        tx = EVMTransaction(hash="0x1", from_address="0xA", network=ETHEREUM)
        assert not tx.is_confirmed
        assert tx.model_copy(update={"block_hash": "0xb"}).is_confirmed


class TestAction:
    def test_blank_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Action(type="  ")

    def test_dump_is_plain(self) -> None:
        assert Action(type="a/b", payload={"n": 1}).model_dump() == {"type": "a/b", "payload": {"n": 1}}


# ------------------------------------------------------------------
# Merge policy
# ------------------------------------------------------------------


class TestPolicy:
    def test_loading_only_marks_untracked_accounts(self) -> None:
        assert is_loading("loading")
        assert not is_loading({"balances": {}})
        assert should_mark_loading(None)
        assert not should_mark_loading("loading")
        assert not should_mark_loading({"balances": {}})

    def test_classify_transaction(self) -> None:
        assert classify_transaction(None) == TransactionStatus.SEEN
        assert classify_transaction("") == TransactionStatus.SEEN
        assert classify_transaction("0xb") == TransactionStatus.CONFIRMED

    @pytest.mark.parametrize(
        ("existing", "incoming", "expected"),
        [
            (None, TransactionStatus.SEEN, TransactionStatus.SEEN),
            (TransactionStatus.SEEN, TransactionStatus.CONFIRMED, TransactionStatus.CONFIRMED),
            (TransactionStatus.CONFIRMED, TransactionStatus.SEEN, TransactionStatus.CONFIRMED),
            ("confirmed", TransactionStatus.SEEN, TransactionStatus.CONFIRMED),
        ],
    )
    def test_confirmed_is_terminal(self, existing, incoming, expected) -> None:  # type: ignore[no-untyped-def]
        assert merge_transaction_status(existing, incoming) == expected
