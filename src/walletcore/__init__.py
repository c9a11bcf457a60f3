"""walletcore - service orchestration and state synchronization for a wallet backend."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("walletcore")
except PackageNotFoundError:
    __version__ = "0+local"

from walletcore.codec import decode, encode
from walletcore.config import MqttReplicaConfig, WalletConfig
from walletcore.exceptions import (
    MalformedEncoding,
    ReplicaChannelError,
    ServiceStartFailure,
    StateStorageError,
    UnhandledIntentFailure,
    WalletConfigError,
    WalletCoreError,
    WalletCryptoError,
)
from walletcore.main import WalletMain
from walletcore.services.bootstrap import ServiceBootstrapper, ServiceFactories, ServiceHandles
from walletcore.services.emitter import Emitter
from walletcore.services.handle import ServiceHandle
from walletcore.state.actions import Action
from walletcore.state.store import Store

__all__ = [
    "__version__",
    "Action",
    "Emitter",
    "MalformedEncoding",
    "MqttReplicaConfig",
    "ReplicaChannelError",
    "ServiceBootstrapper",
    "ServiceFactories",
    "ServiceHandle",
    "ServiceHandles",
    "ServiceStartFailure",
    "StateStorageError",
    "Store",
    "UnhandledIntentFailure",
    "WalletConfig",
    "WalletConfigError",
    "WalletCoreError",
    "WalletCryptoError",
    "WalletMain",
    "decode",
    "encode",
]
