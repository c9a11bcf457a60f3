"""AES-CBC encryption for replica payloads sent over shared brokers.

Wire format: uppercase hex of ``IV (16 bytes) || ciphertext``, PKCS7 padded.
"""

from __future__ import annotations

import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from walletcore.exceptions import WalletCryptoError

_IV_BYTES = 16


def _parse_hex_bytes(
    value: str,
    *,
    name: str,
    allowed_nbytes: set[int] | None = None,
) -> bytes:
    text = value.strip()
    if text.startswith("0x") or text.startswith("0X"):
        text = text[2:]
    if not text:
        raise WalletCryptoError(f"{name} is empty")
    if len(text) % 2 != 0:
        raise WalletCryptoError(f"{name} hex length must be even (got {len(text)})")
    try:
        data = bytes.fromhex(text)
    except ValueError as exc:
        raise WalletCryptoError(f"{name} must be hex-encoded") from exc

    if allowed_nbytes is not None and len(data) not in allowed_nbytes:
        allowed = ", ".join(str(n) for n in sorted(allowed_nbytes))
        raise WalletCryptoError(f"{name} must be {allowed} bytes (got {len(data)})")
    return data


def aes_encrypt_payload(plaintext: str, key_hex: str) -> str:
    """Encrypt a UTF-8 payload with a fresh random IV.

    Parameters
    ----------
    plaintext : str
        Encoded replica message.
    key_hex : str
        Hex AES key (16, 24 or 32 bytes).

    Returns
    -------
    str
        Uppercase hex of IV followed by ciphertext.

    Raises
    ------
    WalletCryptoError
        If the key is invalid or encryption fails.
    """
    key = _parse_hex_bytes(key_hex, name="AES key", allowed_nbytes={16, 24, 32})
    try:
        iv = os.urandom(_IV_BYTES)
        padder = padding.PKCS7(128).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        ct = encryptor.update(padded) + encryptor.finalize()
        return (iv + ct).hex().upper()
    except Exception as exc:
        raise WalletCryptoError(f"AES encryption failed: {exc}") from exc


def aes_decrypt_payload(cipher_hex: str, key_hex: str) -> str:
    """Decrypt a payload produced by :func:`aes_encrypt_payload`.

    Raises
    ------
    WalletCryptoError
        If the key or ciphertext is invalid, or padding does not verify.
    """
    key = _parse_hex_bytes(key_hex, name="AES key", allowed_nbytes={16, 24, 32})
    data = _parse_hex_bytes(cipher_hex, name="AES ciphertext")
    if len(data) <= _IV_BYTES:
        raise WalletCryptoError("AES ciphertext is shorter than its IV")
    iv, ct = data[:_IV_BYTES], data[_IV_BYTES:]
    try:
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ct) + decryptor.finalize()
        unpadder = padding.PKCS7(128).unpadder()
        plaintext = unpadder.update(padded) + unpadder.finalize()
        return plaintext.decode("utf-8")
    except Exception as exc:
        raise WalletCryptoError(f"AES decryption failed: {exc}") from exc
