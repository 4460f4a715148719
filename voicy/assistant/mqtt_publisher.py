"""Mirror session events onto MQTT topics.

Topics (under ``<topic_base>``):
- ``activity``: each activity log message, plain text
- ``intent``: the last recognized intent as JSON
- ``listening``: ``ON``/``OFF``, retained
- ``command``: the last command result as JSON
"""

from __future__ import annotations

import logging

from .events import ActivityLogged, AssistantEvent, CommandExecuted, IntentRecognized, ListeningStateChanged
from .mqtt import AssistantMqtt

LOGGER = logging.getLogger(__name__)


class SessionEventPublisher:
    """EventHub subscriber that forwards every event to MQTT."""

    def __init__(self, mqtt: AssistantMqtt, topic_base: str, logger: logging.Logger | None = None) -> None:
        self.mqtt = mqtt
        self.logger = logger or LOGGER
        base = topic_base.rstrip("/")
        self.activity_topic = f"{base}/activity"
        self.intent_topic = f"{base}/intent"
        self.listening_topic = f"{base}/listening"
        self.command_topic = f"{base}/command"

    def __call__(self, event: AssistantEvent) -> None:
        if isinstance(event, ActivityLogged):
            self.mqtt.publish(self.activity_topic, event.message)
        elif isinstance(event, IntentRecognized):
            self.mqtt.publish_json(self.intent_topic, event.intent.to_dict())
        elif isinstance(event, ListeningStateChanged):
            self.mqtt.publish(self.listening_topic, "ON" if event.listening else "OFF", retain=True)
        elif isinstance(event, CommandExecuted):
            self.mqtt.publish_json(self.command_topic, event.result.to_dict())
        else:
            self.logger.debug("[mqtt] Ignoring unsupported event %s", type(event).__name__)
