"""Runtime configuration for walletcore."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from walletcore._constants import (
    DEFAULT_DEVTOOLS_HOST,
    DEFAULT_DEVTOOLS_PORT,
    DEFAULT_MQTT_TOPIC_PREFIX,
    STATE_STORAGE_KEY,
)
from walletcore.exceptions import WalletConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_int(env: Mapping[str, str], key: str) -> int | None:
    value = env.get(key)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise WalletConfigError(f"{key} must be an integer, got {value!r}") from exc


def _default_state_dir() -> Path:
    return Path.home() / ".walletcore"


@dataclasses.dataclass(frozen=True)
class MqttReplicaConfig:
    """Broker settings for the MQTT replica channel.

    Parameters
    ----------
    host : str
        Broker host name.
    port : int
        Broker port.
    topic_prefix : str
        Outbound messages go to ``<prefix>/state``; replica intents are read
        from ``<prefix>/dispatch``.
    payload_key : str or None
        Optional hex AES key shared with replicas. When set, every payload
        is AES-CBC encrypted and hex encoded on the wire.
    keepalive : int
        MQTT keepalive in seconds.
    tls : bool
        Whether to enable TLS for the broker connection.
    """

    host: str = "localhost"
    port: int = 1883
    topic_prefix: str = DEFAULT_MQTT_TOPIC_PREFIX
    payload_key: str | None = None
    keepalive: int = 120
    tls: bool = False


@dataclasses.dataclass(frozen=True)
class WalletConfig:
    """Core configuration.

    Parameters
    ----------
    state_cache : bool
        Persist the state tree on every dispatch and hydrate it at startup.
        When ``False`` the process always starts empty and never writes.
    state_dir : Path
        Directory holding the persisted snapshot.
    state_key : str
        Storage key of the snapshot.
    initial_account : str or None
        Address registered for tracking once the indexing service is up.
    keyring_password : str
        Password used to unlock keyrings for generate/import intents.
    legacy_mnemonic : str or None
        When set, a legacy keyring import is requested on keyring connect.
    devtools_enabled : bool
        Serve replicas over a WebSocket endpoint.
    devtools_host : str
        WebSocket bind host.
    devtools_port : int
        WebSocket bind port.
    mqtt_enabled : bool
        Mirror the store over MQTT.
    mqtt : MqttReplicaConfig
        MQTT replica settings.
    """

    state_cache: bool = False
    state_dir: Path = dataclasses.field(default_factory=_default_state_dir)
    state_key: str = STATE_STORAGE_KEY
    initial_account: str | None = None
    keyring_password: str = "password"
    legacy_mnemonic: str | None = None
    devtools_enabled: bool = False
    devtools_host: str = DEFAULT_DEVTOOLS_HOST
    devtools_port: int = DEFAULT_DEVTOOLS_PORT
    mqtt_enabled: bool = False
    mqtt: MqttReplicaConfig = dataclasses.field(default_factory=MqttReplicaConfig)

    @classmethod
    def from_env(cls, **overrides: Any) -> WalletConfig:
        """Create configuration from ``WALLET_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        mqtt_kwargs: dict[str, Any] = {}
        _ENV_MQTT_MAP = {
            "WALLET_MQTT_HOST": "host",
            "WALLET_MQTT_TOPIC_PREFIX": "topic_prefix",
            "WALLET_MQTT_KEY": "payload_key",
        }
        for env_key, field_name in _ENV_MQTT_MAP.items():
            val = env.get(env_key)
            if val is not None:
                mqtt_kwargs[field_name] = val
        for env_key, field_name in (("WALLET_MQTT_PORT", "port"), ("WALLET_MQTT_KEEPALIVE", "keepalive")):
            parsed = _env_int(env, env_key)
            if parsed is not None:
                mqtt_kwargs[field_name] = parsed
        if "WALLET_MQTT_TLS" in env:
            mqtt_kwargs["tls"] = _env_bool(env.get("WALLET_MQTT_TLS"), False)

        mqtt_overrides = overrides.pop("mqtt", None)
        if isinstance(mqtt_overrides, dict):
            mqtt_kwargs.update(mqtt_overrides)
        elif isinstance(mqtt_overrides, MqttReplicaConfig):
            mqtt_kwargs = dataclasses.asdict(mqtt_overrides)

        config_kwargs: dict[str, Any] = {"mqtt": MqttReplicaConfig(**mqtt_kwargs)}

        _ENV_CONFIG_MAP = {
            "WALLET_STATE_KEY": "state_key",
            "WALLET_INITIAL_ACCOUNT": "initial_account",
            "WALLET_KEYRING_PASSWORD": "keyring_password",
            "WALLET_LEGACY_MNEMONIC": "legacy_mnemonic",
            "WALLET_DEVTOOLS_HOST": "devtools_host",
        }
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        state_dir = env.get("WALLET_STATE_DIR")
        if state_dir is not None:
            config_kwargs["state_dir"] = Path(state_dir).expanduser()

        port = _env_int(env, "WALLET_DEVTOOLS_PORT")
        if port is not None:
            config_kwargs["devtools_port"] = port

        config_kwargs["state_cache"] = _env_bool(env.get("WALLET_STATE_CACHE"), False)
        config_kwargs["devtools_enabled"] = _env_bool(env.get("WALLET_DEVTOOLS_ENABLED"), False)
        config_kwargs["mqtt_enabled"] = _env_bool(env.get("WALLET_MQTT_ENABLED"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
