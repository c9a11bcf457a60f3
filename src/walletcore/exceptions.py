"""Custom exception hierarchy for walletcore."""

from __future__ import annotations


class WalletCoreError(Exception):
    """Base exception for all walletcore errors."""


class WalletConfigError(WalletCoreError):
    """Invalid or missing configuration."""


class ServiceStartFailure(WalletCoreError):
    """A backend service's start operation failed.

    The service's handle is left pending forever, so every direct and
    transitive dependent stalls.  The failure is recorded on the handle
    and logged; it is not retried.
    """

    def __init__(self, message: str, *, service: str = "") -> None:
        self.service = service
        super().__init__(message)


class MalformedEncoding(WalletCoreError):
    """Encoded text could not be decoded.

    Raised for invalid JSON and for a big-integer marker whose payload is
    not an integer literal.
    """


class UnhandledIntentFailure(WalletCoreError):
    """A service operation invoked for a UI intent failed.

    The bridge does not handle these; they are logged by the intent
    emitter and never reach the store.
    """

    def __init__(self, message: str, *, intent: str = "") -> None:
        self.intent = intent
        super().__init__(message)


class StateStorageError(WalletCoreError):
    """Durable storage read or write failed."""

    def __init__(self, message: str, *, key: str = "") -> None:
        self.key = key
        super().__init__(message)


class ReplicaChannelError(WalletCoreError):
    """Replica transport failure (connect, send, or receive)."""

    def __init__(self, message: str, *, channel: str = "") -> None:
        self.channel = channel
        super().__init__(message)


class WalletCryptoError(ReplicaChannelError):
    """Encryption or decryption of a replica payload failed."""
