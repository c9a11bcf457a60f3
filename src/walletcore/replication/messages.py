"""Replica message envelopes."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from walletcore import codec
from walletcore.exceptions import MalformedEncoding


class MessageKind(StrEnum):
    STATE = "state"
    ACTION = "action"
    DISPATCH = "dispatch"


def encode_message(kind: MessageKind, payload: Any) -> str:
    return codec.encode({"kind": str(kind), "payload": payload})


def decode_message(text: str | bytes) -> tuple[MessageKind, Any]:
    """Decode an envelope.

    Raises
    ------
    MalformedEncoding
        If the text is not a valid envelope.
    """
    message = codec.decode(text)
    if not isinstance(message, dict) or "kind" not in message:
        raise MalformedEncoding("Replica message is not an envelope")
    try:
        kind = MessageKind(message["kind"])
    except ValueError as exc:
        raise MalformedEncoding(f"Unknown replica message kind {message['kind']!r}") from exc
    return kind, message.get("payload")
