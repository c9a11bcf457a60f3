"""Base model for walletcore domain payloads.

Every payload a service emits, and every payload carried by an action,
inherits from :class:`WalletBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase keys coming from service
  emitters (and from replicas) map automatically to snake_case fields.
* Frozen instances, so a payload cannot change after it was dispatched.
* :meth:`WalletBaseModel.to_state` which dumps to a plain tree the state
  reducer and the numeric-safe codec can handle.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def normalize_address(value: str) -> str:
    """Lowercase a hex address and strip surrounding whitespace."""
    address = value.strip().lower()
    if not address:
        raise ValueError("address must be non-empty")
    return address


class WalletBaseModel(BaseModel):
    """Base for domain payload models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_state(self) -> dict[str, Any]:
        """Dump to a plain dict (snake_case keys, enums as values, ints kept exact)."""
        return self.model_dump(mode="json")
