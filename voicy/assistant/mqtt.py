"""Thin paho-mqtt wrapper used for assistant telemetry."""

from __future__ import annotations

import json
import logging
import ssl
import threading
from typing import Any

import paho.mqtt.client as mqtt

from .config import MqttConfig


class AssistantMqtt:
    def __init__(self, config: MqttConfig, logger: logging.Logger | None = None) -> None:
        self.config = config
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return bool(self.config.host)

    def connect(self) -> bool:
        """Connect and start the network loop; returns False when telemetry stays off."""
        if not self.enabled:
            self._logger.debug("[mqtt] MQTT host not configured; assistant telemetry disabled")
            return False
        with self._lock:
            if self._client is not None:
                return True
            client = self._build_client()
            try:
                client.connect(self.config.host, self.config.port, keepalive=30)
            except (OSError, ValueError) as exc:
                self._logger.warning("[mqtt] Failed to connect to %s:%s: %s", self.config.host, self.config.port, exc)
                return False
            client.loop_start()
            self._client = client
        self._logger.info("[mqtt] Connected to %s:%s", self.config.host, self.config.port)
        return True

    def disconnect(self) -> None:
        with self._lock:
            client = self._client
            self._client = None
        if client:
            client.loop_stop()
            client.disconnect()

    def is_connected(self) -> bool:
        client = self._client
        return bool(client and client.is_connected())

    def publish(self, topic: str, payload: str, retain: bool = False, qos: int = 0) -> None:
        client = self._client
        if not client:
            return
        info = client.publish(topic, payload=payload, qos=qos, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self._logger.debug("[mqtt] Publish to %s failed (rc=%s)", topic, info.rc)

    def publish_json(self, topic: str, payload: dict[str, Any], retain: bool = False) -> None:
        self.publish(topic, json.dumps(payload), retain=retain)

    def _build_client(self) -> mqtt.Client:
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=f"voicy-assistant-{self.config.topic_base.replace('/', '-')}",
            clean_session=True,
        )
        if self.config.username:
            client.username_pw_set(self.config.username, self.config.password or "")
        if self.config.tls_enabled:
            tls_kwargs: dict[str, object] = {"tls_version": ssl.PROTOCOL_TLS_CLIENT}
            if self.config.ca_cert:
                tls_kwargs["ca_certs"] = self.config.ca_cert
            if self.config.cert:
                tls_kwargs["certfile"] = self.config.cert
            if self.config.key:
                tls_kwargs["keyfile"] = self.config.key
            client.tls_set(**tls_kwargs)
        client.will_set(f"{self.config.topic_base}/listening", payload="OFF", retain=True)
        return client
