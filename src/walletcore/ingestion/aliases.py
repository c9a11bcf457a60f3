"""UI intents ("aliases") and the middleware that turns them into emissions.

An alias action never reaches the reducer. The alias middleware runs
first in the chain, emits the matching intent on the store's companion
intent emitter, and forwards a follow-up reducer action where there is one.
Because aliases stop here, intent payloads (mnemonics) are never
replicated or persisted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from pydantic import ValidationError

from walletcore._constants import INTENT_ADD_ACCOUNT, INTENT_GENERATE_KEYRING, INTENT_IMPORT_LEGACY_KEYRING
from walletcore.models import AccountNetwork
from walletcore.services.emitter import Emitter
from walletcore.state.accounts import load_account
from walletcore.state.actions import Action, ActionCreator
from walletcore.state.keyrings import import_legacy_keyring_started
from walletcore.state.store import Dispatch, Store

_logger = logging.getLogger(__name__)

AliasHandler = Callable[[Action, Emitter], Action | None]

add_account = ActionCreator("ui/addAccount", prepare=AccountNetwork.to_state)
generate_new_keyring = ActionCreator("ui/generateNewKeyring", prepare=lambda: None)
import_legacy_keyring = ActionCreator("ui/importLegacyKeyring", prepare=lambda mnemonic: {"mnemonic": mnemonic})


def _alias_add_account(action: Action, intents: Emitter) -> Action | None:
    account_network = AccountNetwork.model_validate(action.payload)
    intents.emit(INTENT_ADD_ACCOUNT, account_network)
    return load_account(account_network.account)


def _alias_generate_new_keyring(_action: Action, intents: Emitter) -> Action | None:
    intents.emit(INTENT_GENERATE_KEYRING)
    return None


def _alias_import_legacy_keyring(action: Action, intents: Emitter) -> Action | None:
    payload = action.payload
    mnemonic = payload.get("mnemonic") if isinstance(payload, Mapping) else None
    if not isinstance(mnemonic, str) or not mnemonic.strip():
        raise ValueError("importLegacyKeyring requires a mnemonic")
    intents.emit(INTENT_IMPORT_LEGACY_KEYRING, mnemonic.strip())
    return import_legacy_keyring_started()


ALL_ALIASES: dict[str, AliasHandler] = {
    add_account.type: _alias_add_account,
    generate_new_keyring.type: _alias_generate_new_keyring,
    import_legacy_keyring.type: _alias_import_legacy_keyring,
}


class AliasMiddleware:
    """First stage of the dispatch chain: intercepts alias actions."""

    def __init__(self, intents: Emitter, aliases: Mapping[str, AliasHandler] = ALL_ALIASES) -> None:
        self._intents = intents
        self._aliases = dict(aliases)

    def __call__(self, store: Store, next_dispatch: Dispatch) -> Dispatch:
        def dispatch(action: Action) -> Action:
            handler = self._aliases.get(action.type)
            if handler is None:
                return next_dispatch(action)
            try:
                follow_up = handler(action, self._intents)
            except (ValidationError, TypeError, ValueError):
                _logger.warning("Ignoring malformed intent %s", action.type, exc_info=True)
                return action
            if follow_up is None:
                return action
            return next_dispatch(follow_up)

        return dispatch


__all__: list[str] = [
    "ALL_ALIASES",
    "AliasMiddleware",
    "add_account",
    "generate_new_keyring",
    "import_legacy_keyring",
]
