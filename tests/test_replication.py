from __future__ import annotations

import asyncio
import logging

import aiohttp
import pytest

from walletcore.codec import decode, encode
from walletcore.exceptions import ReplicaChannelError
from walletcore.models import ETH, ETHEREUM, AccountBalance, AssetAmount
from walletcore.replication import LoopbackChannel, ReplicaMirror, ReplicationHub
from walletcore.replication.messages import MessageKind, decode_message, encode_message
from walletcore.replication.websocket import WebSocketReplicaServer
from walletcore.state.accounts import load_account, update_account_balance
from walletcore.state.actions import Action
from walletcore.state.store import Store

WHALE = "0x00000000219ab540356cbb839cbe05303d7705fa"


def _balance(amount: int) -> AccountBalance:
    return AccountBalance(account=WHALE, network=ETHEREUM, asset_amount=AssetAmount(asset=ETH, amount=amount))


class BrokenChannel:
    def __init__(self, name: str = "broken") -> None:
        self.name = name
        self.closed = False

    async def send(self, text: str) -> None:
        raise ReplicaChannelError("peer went away", channel=self.name)

    async def close(self) -> None:
        self.closed = True


def _hub_store() -> tuple[ReplicationHub, Store]:
    hub = ReplicationHub()
    return hub, Store(middleware=[hub])


@pytest.mark.asyncio
async def test_mirror_tracks_canonical_state_with_big_integers() -> None:
    hub, store = _hub_store()
    store.dispatch(load_account(WHALE))
    loopback = LoopbackChannel(deliver=hub.receive)
    hub.attach(loopback)

    store.dispatch(update_account_balance(_balance(2**128 + 1)))
    store.dispatch(load_account("0x2"))
    await hub.flush()

    assert loopback.mirror.state == store.get_state()
    assert loopback.mirror.actions_applied == 2
    assert decode_message(loopback.sent[0])[0] == MessageKind.STATE
    amount = loopback.mirror.state["account"]["accounts_data"][WHALE]["balances"]["ETH"]["amount"]
    assert amount == 2**128 + 1
    await hub.close()


@pytest.mark.asyncio
async def test_replica_intent_is_dispatched() -> None:
    hub, store = _hub_store()
    loopback = LoopbackChannel(deliver=hub.receive)
    hub.attach(loopback)

    result = loopback.dispatch(load_account(WHALE))
    await hub.flush()

    assert result is not None and result.type == "account/loadAccount"
    assert WHALE in store.get_state()["account"]["accounts_data"]
    assert loopback.mirror.state == store.get_state()
    await hub.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "text",
    [
        "not json",
        encode({"kind": "teleport", "payload": {}}),
        encode_message(MessageKind.STATE, {"account": {}}),
        encode_message(MessageKind.DISPATCH, {"payload": 1}),
        encode_message(MessageKind.DISPATCH, ["account/loadAccount"]),
    ],
)
async def test_malformed_replica_messages_are_dropped(text: str, caplog: pytest.LogCaptureFixture) -> None:
    hub, store = _hub_store()
    before = store.get_state()

    with caplog.at_level(logging.WARNING, logger="walletcore.replication.hub"):
        assert hub.receive(text, source="test") is None

    assert store.get_state() == before
    assert store.version == 0
    assert "Dropping malformed message" in caplog.text


@pytest.mark.asyncio
async def test_broken_replica_is_detached_without_affecting_others() -> None:
    hub, store = _hub_store()
    healthy = LoopbackChannel("healthy", deliver=hub.receive)
    broken = BrokenChannel()
    hub.attach(broken)
    hub.attach(healthy)

    store.dispatch(load_account(WHALE))
    await hub.flush()
    await asyncio.sleep(0)

    assert hub.replica_names == ["healthy"]
    assert healthy.mirror.state == store.get_state()
    await hub.close()


@pytest.mark.asyncio
async def test_duplicate_replica_name_is_rejected() -> None:
    hub, _store = _hub_store()
    hub.attach(LoopbackChannel("one"))

    with pytest.raises(ValueError, match="already attached"):
        hub.attach(LoopbackChannel("one"))
    await hub.close()


def test_hub_requires_installation_as_middleware() -> None:
    with pytest.raises(RuntimeError, match="not installed"):
        ReplicationHub().receive(ReplicaMirror.intent(Action(type="x")))


def test_mirror_ignores_actions_before_snapshot() -> None:
    mirror = ReplicaMirror()
    mirror.receive(encode_message(MessageKind.ACTION, load_account(WHALE).model_dump()))

    assert not mirror.ready
    assert mirror.actions_applied == 0


@pytest.mark.asyncio
async def test_websocket_replica_end_to_end() -> None:
    hub, store = _hub_store()
    store.dispatch(update_account_balance(_balance(10**30)))
    server = WebSocketReplicaServer(hub, host="127.0.0.1", port=0, heartbeat=5.0)
    await server.start()
    try:
        async with aiohttp.ClientSession() as session:
            async with session.ws_connect(f"http://127.0.0.1:{server.port}/") as ws:
                first = decode(await ws.receive_str(timeout=2))
                assert first["kind"] == "state"
                assert first["payload"] == store.get_state()

                await ws.send_str(ReplicaMirror.intent(load_account("0xFEED")))
                echoed = decode(await ws.receive_str(timeout=2))
                assert echoed == {"kind": "action", "payload": {"type": "account/loadAccount", "payload": "0xfeed"}}

                store.dispatch(load_account("0xBEEF"))
                pushed = decode(await ws.receive_str(timeout=2))
                assert pushed["payload"]["payload"] == "0xbeef"

        assert "0xfeed" in store.get_state()["account"]["accounts_data"]
        for _ in range(100):
            if not hub.replica_names:
                break
            await asyncio.sleep(0.01)
        assert hub.replica_names == []
    finally:
        await server.stop()
