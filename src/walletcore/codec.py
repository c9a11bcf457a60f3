"""Numeric-safe JSON codec.

JSON consumers on the other side of a replica channel (and anything that
parses numbers as IEEE doubles) silently round integers beyond 2**53.
This codec wraps such integers in a single-key marker object so they
survive storage and replication exactly::

    {"amount": {"B_I_G_I_N_T": "1000000000000000000000"}}

Integers inside the safe range stay plain JSON numbers.  ``bool`` is never
treated as an integer.  The marker key is reserved: encoding a mapping
that uses it raises ``TypeError``.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping, Sequence
from typing import Any

from walletcore.exceptions import MalformedEncoding

BIGINT_MARKER = "B_I_G_I_N_T"

#: Largest integer magnitude a double can hold without loss.
MAX_SAFE_INTEGER = 2**53 - 1

_INT_LITERAL = re.compile(r"-?[0-9]+")


def _is_big(value: int) -> bool:
    return abs(value) > MAX_SAFE_INTEGER


def to_transport(value: Any) -> Any:
    """Return a copy of *value* with unsafe integers replaced by markers."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return {BIGINT_MARKER: str(value)} if _is_big(value) else value
    if isinstance(value, (str, float)):
        return value
    if isinstance(value, Mapping):
        if BIGINT_MARKER in value:
            raise TypeError(f"{BIGINT_MARKER!r} is a reserved key")
        return {str(k): to_transport(v) for k, v in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return [to_transport(v) for v in value]
    raise TypeError(f"Cannot encode value of type {type(value).__name__}")


def _revive(obj: dict[str, Any]) -> Any:
    if BIGINT_MARKER not in obj:
        return obj
    literal = obj[BIGINT_MARKER]
    if len(obj) != 1 or not isinstance(literal, str) or not _INT_LITERAL.fullmatch(literal):
        raise MalformedEncoding(f"Invalid big integer payload: {literal!r}")
    return int(literal)


def encode(value: Any) -> str:
    """Encode *value* into numeric-safe JSON text."""
    return json.dumps(to_transport(value), separators=(",", ":"), ensure_ascii=False)


def decode(text: str | bytes) -> Any:
    """Decode text produced by :func:`encode`.

    Raises
    ------
    MalformedEncoding
        If *text* is not valid JSON or carries an invalid big integer.
    """
    try:
        return json.loads(text, object_hook=_revive)
    except MalformedEncoding:
        raise
    except (TypeError, ValueError) as exc:
        raise MalformedEncoding(f"Invalid encoded payload: {exc}") from exc
