"""Keyring slice: the public keyring list and legacy import progress."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from walletcore.models import Keyring
from walletcore.state.policy import ImportStatus
from walletcore.state.slice import Slice


def _initial_state() -> dict[str, Any]:
    return {"keyrings": [], "import_status": str(ImportStatus.IDLE)}


def _dump_keyrings(keyrings: Iterable[Keyring]) -> list[dict[str, Any]]:
    return [keyring.to_state() for keyring in keyrings]


keyrings_slice = Slice("keyrings", _initial_state)

update_keyrings = keyrings_slice.action("updateKeyrings", prepare=_dump_keyrings)
# No payload: the mnemonic itself never enters the state tree.
import_legacy_keyring_started = keyrings_slice.action("importLegacyKeyring", prepare=lambda: None)


@keyrings_slice.reducer(update_keyrings)
def _update_keyrings(draft: dict[str, Any], payload: Any) -> None:
    draft["keyrings"] = [Keyring.model_validate(item).to_state() for item in payload]
    if draft.get("import_status") == ImportStatus.PENDING:
        draft["import_status"] = str(ImportStatus.DONE)


@keyrings_slice.reducer(import_legacy_keyring_started)
def _import_legacy_keyring(draft: dict[str, Any], _payload: Any) -> None:
    draft["import_status"] = str(ImportStatus.PENDING)
