from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from walletcore._storage import FileStorage, MemoryStorage
from walletcore.codec import decode, encode
from walletcore.exceptions import StateStorageError
from walletcore.persistence import PersistenceMiddleware, SnapshotWriter, load_persisted_state
from walletcore.state.accounts import load_account
from walletcore.state.store import Store


class FailingStorage:
    def __init__(self) -> None:
        self.attempts = 0

    async def get(self, key: str) -> str | None:
        raise StateStorageError("disk unavailable", key=key)

    async def set(self, key: str, text: str) -> None:
        self.attempts += 1
        raise StateStorageError("disk unavailable", key=key)


class SlowStorage(MemoryStorage):
    def __init__(self) -> None:
        super().__init__()
        self.history: list[str] = []
        self.release = asyncio.Event()

    async def set(self, key: str, text: str) -> None:
        await self.release.wait()
        self.history.append(text)
        await super().set(key, text)


@pytest.mark.asyncio
async def test_file_storage_round_trip(tmp_path: Path) -> None:
    storage = FileStorage(tmp_path / "nested")

    assert await storage.get("state") is None
    await storage.set("state", encode({"amount": 2**90}))

    assert storage.path_for("state").exists()
    assert decode(await storage.get("state")) == {"amount": 2**90}
    assert list((tmp_path / "nested").iterdir()) == [storage.path_for("state")]


def test_file_storage_rejects_path_like_keys(tmp_path: Path) -> None:
    with pytest.raises(StateStorageError):
        FileStorage(tmp_path).path_for("../escape")


@pytest.mark.asyncio
@pytest.mark.parametrize("stored", ["{broken", '{"a": {"B_I_G_I_N_T": "1.5"}}', "[1, 2]"])
async def test_unusable_snapshot_starts_empty(stored: str) -> None:
    assert await load_persisted_state(MemoryStorage({"state": stored}), "state") is None


@pytest.mark.asyncio
async def test_unreadable_storage_starts_empty() -> None:
    assert await load_persisted_state(FailingStorage(), "state") is None


@pytest.mark.asyncio
async def test_every_dispatch_submits_the_full_tree() -> None:
    storage = MemoryStorage()
    writer = SnapshotWriter(storage, "state")
    store = Store(middleware=[PersistenceMiddleware(writer)])
    writer.start()

    store.dispatch(load_account("0xABC"))
    store.dispatch(load_account("0xDEF"))
    await writer.stop()

    assert decode(storage.values["state"]) == store.get_state()


@pytest.mark.asyncio
async def test_bursts_coalesce_to_latest_snapshot() -> None:
    storage = SlowStorage()
    writer = SnapshotWriter(storage, "state")
    store = Store(middleware=[PersistenceMiddleware(writer)])
    writer.start()

    store.dispatch(load_account("0x1"))
    await asyncio.sleep(0)
    for n in range(2, 6):
        store.dispatch(load_account(f"0x{n}"))
    storage.release.set()
    await writer.stop()

    assert len(storage.history) <= 2
    assert decode(storage.history[-1]) == store.get_state()


@pytest.mark.asyncio
async def test_storage_failure_never_blocks_dispatch() -> None:
    storage = FailingStorage()
    writer = SnapshotWriter(storage, "state")
    store = Store(middleware=[PersistenceMiddleware(writer)])
    writer.start()

    store.dispatch(load_account("0xABC"))
    await asyncio.sleep(0.01)
    store.dispatch(load_account("0xDEF"))
    await writer.stop()

    assert storage.attempts >= 1
    assert set(store.get_state()["account"]["accounts_data"]) == {"0xabc", "0xdef"}
    assert writer.writes == 0


@pytest.mark.asyncio
async def test_disabled_persistence_never_writes() -> None:
    storage = MemoryStorage()
    writer = SnapshotWriter(storage, "state")
    store = Store(middleware=[PersistenceMiddleware(writer, enabled=False)])
    writer.start()

    store.dispatch(load_account("0xABC"))
    await writer.stop()

    assert storage.values == {}
    assert writer.writes == 0
