from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest

from walletcore.exceptions import ServiceStartFailure
from walletcore.models import ETHEREUM, AccountNetwork
from walletcore.services.bootstrap import ServiceBootstrapper, ServiceFactories
from walletcore.services.emitter import Emitter
from walletcore.services.handle import ServiceHandle


@dataclass
class _Service:
    name: str
    emitter: Emitter = field(default_factory=Emitter)
    tracked: list[AccountNetwork] = field(default_factory=list)

    async def add_account_to_track(self, account_network: AccountNetwork) -> None:
        self.tracked.append(account_network)


@dataclass
class _Factories:
    chain_gate: asyncio.Event = field(default_factory=asyncio.Event)
    fail: set[str] = field(default_factory=set)
    started: list[str] = field(default_factory=list)
    chain_service: _Service = field(default_factory=lambda: _Service("chain"))

    async def _make(self, name: str) -> _Service:
        if name in self.fail:
            raise ConnectionError(f"{name} backend unreachable")
        self.started.append(name)
        return _Service(name)

    async def preferences(self) -> Any:
        return await self._make("preferences")

    async def chain(self, preferences: ServiceHandle[Any]) -> Any:
        await preferences
        await self.chain_gate.wait()
        if "chain" in self.fail:
            raise ConnectionError("chain backend unreachable")
        self.started.append("chain")
        return self.chain_service

    async def indexing(self, preferences: ServiceHandle[Any], chain: ServiceHandle[Any]) -> Any:
        await preferences
        return await self._make("indexing")

    async def keyring(self) -> Any:
        return await self._make("keyring")

    def build(self) -> ServiceFactories:
        return ServiceFactories(
            preferences=self.preferences,
            chain=self.chain,
            indexing=self.indexing,
            keyring=self.keyring,
        )


@pytest.mark.asyncio
async def test_handle_resolves_once_and_wakes_waiters() -> None:
    handle: ServiceHandle[str] = ServiceHandle("chain")
    waiter = asyncio.create_task(handle.wait())
    await asyncio.sleep(0)
    assert not waiter.done()

    handle.resolve("service")

    assert await waiter == "service"
    assert await handle == "service"
    assert handle.result() == "service"
    with pytest.raises(RuntimeError, match="already resolved"):
        handle.resolve("other")


@pytest.mark.asyncio
async def test_handle_wait_times_out_without_cancelling_other_waiters() -> None:
    handle: ServiceHandle[str] = ServiceHandle("keyring")
    patient = asyncio.create_task(handle.wait())

    with pytest.raises(asyncio.TimeoutError):
        await handle.wait(timeout=0.01)

    handle.resolve("ready")
    assert await patient == "ready"


def test_unresolved_handle_result_raises() -> None:
    with pytest.raises(RuntimeError, match="not ready"):
        ServiceHandle("preferences").result()


@pytest.mark.asyncio
async def test_initialize_services_does_not_wait_for_services() -> None:
    factories = _Factories()
    bootstrapper = ServiceBootstrapper(factories.build())

    handles = bootstrapper.initialize_services()
    assert not any(handle.done for handle in handles.all())

    factories.chain_gate.set()
    services = await asyncio.wait_for(asyncio.gather(*(h.wait() for h in handles.all())), 1)

    assert [s.name for s in services] == ["preferences", "chain", "indexing", "keyring"]
    assert bootstrapper.failures == {}


@pytest.mark.asyncio
async def test_indexing_handle_waits_for_initial_account_registration() -> None:
    factories = _Factories()
    initial = AccountNetwork(account="0xABC", network=ETHEREUM)
    bootstrapper = ServiceBootstrapper(factories.build(), initial_account=initial)

    handles = bootstrapper.initialize_services()
    keyring = await asyncio.wait_for(handles.keyring.wait(), 1)
    assert keyring.name == "keyring"
    await asyncio.sleep(0.01)

    # Indexing itself started, but the chain is still gated.
    assert "indexing" in factories.started
    assert not handles.indexing.done
    assert factories.chain_service.tracked == []

    factories.chain_gate.set()
    await asyncio.wait_for(handles.indexing.wait(), 1)

    assert factories.chain_service.tracked == [initial]


@pytest.mark.asyncio
async def test_failed_start_leaves_dependents_pending() -> None:
    factories = _Factories(fail={"preferences"})
    factories.chain_gate.set()
    bootstrapper = ServiceBootstrapper(factories.build())

    handles = bootstrapper.initialize_services()
    await asyncio.wait_for(handles.keyring.wait(), 1)
    await asyncio.sleep(0.01)

    failure = bootstrapper.failures["preferences"]
    assert isinstance(failure, ServiceStartFailure)
    assert failure.service == "preferences"
    assert isinstance(failure.__cause__, ConnectionError)
    assert handles.preferences.failure is failure
    assert not handles.preferences.done
    assert not handles.chain.done
    assert not handles.indexing.done

    await bootstrapper.shutdown()


@pytest.mark.asyncio
async def test_initial_account_waits_for_preferences_too() -> None:
    preferences_gate = asyncio.Event()
    chain = _Service("chain")

    async def preferences() -> Any:
        await preferences_gate.wait()
        return _Service("preferences")

    async def start_chain(_preferences: ServiceHandle[Any]) -> Any:
        return chain

    async def start_indexing(_preferences: ServiceHandle[Any], _chain: ServiceHandle[Any]) -> Any:
        return _Service("indexing")

    async def keyring() -> Any:
        return _Service("keyring")

    initial = AccountNetwork(account="0xABC", network=ETHEREUM)
    bootstrapper = ServiceBootstrapper(
        ServiceFactories(preferences=preferences, chain=start_chain, indexing=start_indexing, keyring=keyring),
        initial_account=initial,
    )

    handles = bootstrapper.initialize_services()
    await asyncio.wait_for(handles.chain.wait(), 1)
    await asyncio.sleep(0.05)

    assert not handles.preferences.done
    assert chain.tracked == []
    assert not handles.indexing.done

    preferences_gate.set()
    await asyncio.wait_for(handles.indexing.wait(), 1)
    assert chain.tracked == [initial]


@pytest.mark.asyncio
async def test_factory_raising_synchronously_is_recorded() -> None:
    factories = _Factories()
    factories.chain_gate.set()

    def broken_keyring() -> Any:
        raise RuntimeError("keyring misconfigured")

    bootstrapper = ServiceBootstrapper(
        ServiceFactories(
            preferences=factories.preferences,
            chain=factories.chain,
            indexing=factories.indexing,
            keyring=broken_keyring,
        )
    )

    handles = bootstrapper.initialize_services()
    await asyncio.wait_for(handles.indexing.wait(), 1)
    await asyncio.sleep(0)

    failure = bootstrapper.failures["keyring"]
    assert isinstance(failure.__cause__, RuntimeError)
    assert handles.keyring.failure is failure
    assert not handles.keyring.done
