"""Payload encryption for replica transports."""

from __future__ import annotations

from walletcore._crypto.aes import aes_decrypt_payload, aes_encrypt_payload

__all__ = [
    "aes_decrypt_payload",
    "aes_encrypt_payload",
]
