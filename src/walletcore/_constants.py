"""Internal constants shared across the library."""

#: Storage key the full state snapshot is written under.
STATE_STORAGE_KEY = "state"

#: Balance entry placeholder while an account's first balance is in flight.
ACCOUNT_LOADING = "loading"

DEFAULT_DEVTOOLS_HOST = "localhost"
DEFAULT_DEVTOOLS_PORT = 8000
DEFAULT_MQTT_TOPIC_PREFIX = "walletcore"

# Intent names emitted on the companion intent channel.
INTENT_ADD_ACCOUNT = "addAccount"
INTENT_GENERATE_KEYRING = "generateNewKeyring"
INTENT_IMPORT_LEGACY_KEYRING = "importLegacyKeyring"
