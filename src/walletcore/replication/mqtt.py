"""MQTT replica channel.

Threaded paho-mqtt runtime: outbound messages are published to
``<prefix>/state``; replica intents are read from ``<prefix>/dispatch`` and
handed to the event loop with ``call_soon_threadsafe``. With a payload key
configured, every payload is AES encrypted on the wire.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from walletcore._crypto.aes import aes_decrypt_payload, aes_encrypt_payload
from walletcore.config import MqttReplicaConfig
from walletcore.exceptions import ReplicaChannelError, WalletCryptoError


class MqttReplicaChannel:
    """Replica channel over an MQTT broker."""

    name = "mqtt"

    def __init__(
        self,
        config: MqttReplicaConfig,
        *,
        loop: asyncio.AbstractEventLoop,
        on_message: Callable[..., Any],
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._loop = loop
        self._on_message = on_message
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False

    @property
    def state_topic(self) -> str:
        return f"{self._config.topic_prefix}/state"

    @property
    def dispatch_topic(self) -> str:
        return f"{self._config.topic_prefix}/dispatch"

    @property
    def is_running(self) -> bool:
        return self._running

    def encode_payload(self, text: str) -> str:
        key = self._config.payload_key
        return aes_encrypt_payload(text, key) if key else text

    def decode_payload(self, payload: bytes) -> str:
        text = payload.decode("utf-8", errors="replace").strip()
        key = self._config.payload_key
        if not key:
            return text
        # Hex payloads may arrive wrapped across lines.
        return aes_decrypt_payload("".join(text.split()), key)

    def start(self) -> None:
        """Connect and subscribe to the dispatch topic."""
        self.stop()
        self._logger.debug(
            "MQTT replica start host=%s port=%s prefix=%s",
            self._config.host,
            self._config.port,
            self._config.topic_prefix,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if self._config.tls:
            client.tls_set()

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT replica connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT replica subscribing topic=%s", self.dispatch_topic)
            c.subscribe(self.dispatch_topic, qos=1)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            try:
                text = self.decode_payload(msg.payload)
            except WalletCryptoError:
                self._logger.warning("Dropping undecryptable MQTT replica message", exc_info=True)
                return
            self._loop.call_soon_threadsafe(self._deliver, text)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT replica disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        try:
            client.connect(self._config.host, self._config.port, keepalive=self._config.keepalive)
        except OSError as exc:
            raise ReplicaChannelError(f"MQTT connect failed: {exc}", channel=self.name) from exc
        client.loop_start()

        self._client = client
        self._running = True

    def stop(self) -> None:
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT replica network loop stopped")

    async def send(self, text: str) -> None:
        client = self._client
        if client is None or not self._running:
            raise ReplicaChannelError("MQTT replica is not running", channel=self.name)
        info = client.publish(self.state_topic, self.encode_payload(text), qos=1)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise ReplicaChannelError(f"MQTT publish failed rc={info.rc}", channel=self.name)

    async def close(self) -> None:
        await self._loop.run_in_executor(None, self.stop)

    def _deliver(self, text: str) -> None:
        self._on_message(text, source=self.name)
