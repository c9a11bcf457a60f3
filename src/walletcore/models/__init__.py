"""Domain payload models.

All public models are re-exported here for convenient access::

    from walletcore.models import AccountBalance, EVMTransaction
"""

from walletcore.models._base import WalletBaseModel
from walletcore.models.account import AccountBalance, AccountNetwork
from walletcore.models.keyring import Keyring, KeyringType
from walletcore.models.network import ETH, ETHEREUM, Asset, AssetAmount, Network
from walletcore.models.transaction import EVMTransaction

__all__ = [
    "AccountBalance",
    "AccountNetwork",
    "Asset",
    "AssetAmount",
    "ETH",
    "ETHEREUM",
    "EVMTransaction",
    "Keyring",
    "KeyringType",
    "Network",
    "WalletBaseModel",
]
