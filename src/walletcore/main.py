"""Process-level wiring of services, store, persistence and replicas."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from walletcore._storage import FileStorage, StateStorage
from walletcore.config import WalletConfig
from walletcore.exceptions import ReplicaChannelError
from walletcore.ingestion.aliases import AliasMiddleware
from walletcore.ingestion.bridge import EventBridge
from walletcore.models import ETHEREUM, AccountNetwork
from walletcore.persistence import PersistenceMiddleware, SnapshotWriter, load_persisted_state
from walletcore.replication.hub import ReplicaChannel, ReplicationHub
from walletcore.replication.mqtt import MqttReplicaChannel
from walletcore.replication.websocket import WebSocketReplicaServer
from walletcore.services.bootstrap import ServiceBootstrapper, ServiceFactories, ServiceHandles
from walletcore.services.emitter import Emitter
from walletcore.state.reducer import root_reducer
from walletcore.state.store import Store

_logger = logging.getLogger(__name__)


class WalletMain:
    """Owns the canonical store and connects every subsystem to it.

    Usage::

        async with WalletMain(WalletConfig.from_env(), factories) as main:
            await main.connected()
            state = main.store.get_state()

    Note that the store is a view onto the services' canonical data used
    to render presentation surfaces; the services own their own state.
    """

    def __init__(
        self,
        config: WalletConfig,
        services: ServiceFactories,
        *,
        storage: StateStorage | None = None,
        replicas: Sequence[ReplicaChannel] = (),
    ) -> None:
        self._config = config
        self._storage = storage if storage is not None else FileStorage(config.state_dir)
        initial_account = (
            AccountNetwork(account=config.initial_account, network=ETHEREUM) if config.initial_account else None
        )
        self._bootstrapper = ServiceBootstrapper(services, initial_account=initial_account)
        self._extra_replicas = list(replicas)

        #: Companion intent channel: alias actions are emitted here.
        self.intents = Emitter("intents", logger=_logger)
        self.replication = ReplicationHub()
        self._writer = SnapshotWriter(self._storage, config.state_key)

        self._store: Store | None = None
        self._handles: ServiceHandles | None = None
        self._bridge: EventBridge | None = None
        self._connect_tasks: list[asyncio.Task[None]] = []
        self._websocket: WebSocketReplicaServer | None = None
        self._mqtt: MqttReplicaChannel | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> WalletMain:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    @property
    def store(self) -> Store:
        if self._store is None:
            raise RuntimeError("WalletMain not started. Use 'async with WalletMain(...) as main:'")
        return self._store

    @property
    def handles(self) -> ServiceHandles:
        if self._handles is None:
            raise RuntimeError("Services not initialized")
        return self._handles

    @property
    def bootstrapper(self) -> ServiceBootstrapper:
        return self._bootstrapper

    async def start(self) -> None:
        """Start services, hydrate, build the store, attach replicas, connect.

        Persisted state is applied before the bridge subscribes to anything,
        so hydration always precedes live events.
        """
        self._handles = self._bootstrapper.initialize_services()

        startup_state: dict[str, Any] | None = None
        if self._config.state_cache:
            startup_state = await load_persisted_state(self._storage, self._config.state_key)
        self.initialize_store(startup_state)

        if self._config.state_cache:
            self._writer.start()
        await self._start_replicas()

        self._bridge = EventBridge(
            self.store,
            self._handles,
            self.intents,
            keyring_password=self._config.keyring_password,
            legacy_mnemonic=self._config.legacy_mnemonic,
        )
        self._connect_tasks = self._bridge.connect()

    def initialize_store(self, startup_state: dict[str, Any] | None = None) -> Store:
        # Aliases first; persistence runs after the reducer inside the chain.
        self._store = Store(
            root_reducer,
            preloaded_state=startup_state,
            middleware=[
                AliasMiddleware(self.intents),
                self.replication,
                PersistenceMiddleware(self._writer, enabled=self._config.state_cache),
            ],
        )
        return self._store

    async def connected(self, timeout: float | None = None) -> None:
        """Wait until every service connection (and chain hydration) finished."""
        if self._connect_tasks:
            await asyncio.wait_for(asyncio.gather(*self._connect_tasks), timeout)

    async def stop(self) -> None:
        if self._bridge is not None:
            await self._bridge.close()
            self._bridge = None
        await self._bootstrapper.shutdown()
        self.intents.cancel_pending()
        await self.intents.drain()

        if self._websocket is not None:
            await self._websocket.stop()
            self._websocket = None
        await self.replication.close()
        self._mqtt = None
        await self._writer.stop()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _start_replicas(self) -> None:
        loop = asyncio.get_running_loop()
        for channel in self._extra_replicas:
            bind = getattr(channel, "bind", None)
            if callable(bind):
                bind(self.replication.receive)
            self.replication.attach(channel)

        if self._config.devtools_enabled:
            server = WebSocketReplicaServer(
                self.replication,
                host=self._config.devtools_host,
                port=self._config.devtools_port,
            )
            try:
                await server.start()
                self._websocket = server
            except ReplicaChannelError:
                _logger.warning("Replica WebSocket server unavailable", exc_info=True)

        if self._config.mqtt_enabled:
            channel = MqttReplicaChannel(
                self._config.mqtt,
                loop=loop,
                on_message=self.replication.receive,
                logger=_logger,
            )
            try:
                await loop.run_in_executor(None, channel.start)
            except ReplicaChannelError:
                _logger.warning("MQTT replica unavailable", exc_info=True)
                return
            self._mqtt = channel
            self.replication.attach(channel)
