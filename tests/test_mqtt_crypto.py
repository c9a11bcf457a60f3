from __future__ import annotations

import asyncio

import pytest

from walletcore._crypto.aes import aes_decrypt_payload, aes_encrypt_payload
from walletcore.codec import decode, encode
from walletcore.config import MqttReplicaConfig
from walletcore.exceptions import ReplicaChannelError, WalletCryptoError
from walletcore.replication.mqtt import MqttReplicaChannel

KEY = "00112233445566778899AABBCCDDEEFF"
OTHER_KEY = "FFEEDDCCBBAA99887766554433221100"


def _channel(payload_key: str | None) -> MqttReplicaChannel:
    return MqttReplicaChannel(
        MqttReplicaConfig(topic_prefix="wallet/test", payload_key=payload_key),
        loop=asyncio.get_running_loop(),
        on_message=lambda text, source: None,
    )


def test_aes_round_trip_uses_fresh_iv() -> None:
    first = aes_encrypt_payload('{"kind":"state"}', KEY)
    second = aes_encrypt_payload('{"kind":"state"}', KEY)

    assert first != second
    assert first == first.upper()
    assert aes_decrypt_payload(first, KEY) == '{"kind":"state"}'


@pytest.mark.parametrize("key", ["", "abc", "zz" * 16, "00" * 15])
def test_invalid_key_raises_crypto_error(key: str) -> None:
    with pytest.raises(WalletCryptoError):
        aes_encrypt_payload("x", key)


def test_crypto_error_is_a_channel_error() -> None:
    with pytest.raises(ReplicaChannelError):
        aes_decrypt_payload("00" * 8, KEY)


@pytest.mark.asyncio
async def test_channel_payloads_are_encrypted_when_keyed() -> None:
    channel = _channel(KEY)
    text = encode({"kind": "action", "payload": {"type": "x", "payload": 2**64}})

    wire = channel.encode_payload(text)
    assert wire != text

    spaced = f"  {wire[:10]}\n{wire[10:]}  ".encode("ascii")
    assert decode(channel.decode_payload(spaced))["payload"]["payload"] == 2**64


@pytest.mark.asyncio
async def test_channel_payloads_pass_through_without_key() -> None:
    channel = _channel(None)

    assert channel.state_topic == "wallet/test/state"
    assert channel.dispatch_topic == "wallet/test/dispatch"
    assert channel.encode_payload("{}") == "{}"
    assert channel.decode_payload(b"{}") == "{}"


@pytest.mark.asyncio
async def test_send_before_start_raises() -> None:
    channel = _channel(None)

    with pytest.raises(ReplicaChannelError, match="not running"):
        await channel.send("{}")


def test_decrypt_with_wrong_key_raises_crypto_error() -> None:
    cipher_hex = aes_encrypt_payload('{"kind":"dispatch","payload":{"type":"ui/addAccount"}}', KEY)

    with pytest.raises(WalletCryptoError, match="AES decryption failed"):
        aes_decrypt_payload(cipher_hex, OTHER_KEY)
