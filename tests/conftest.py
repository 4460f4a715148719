"""Shared test fixtures for the Voicy test suite.

This module provides reusable fixtures for:
- Scripted speech recognizer / recording synthesizer fakes
- Command handlers that record what they were asked to do
- Session construction with the default resolver chain
- Configuration objects
- Async polling helper
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from unittest.mock import Mock

import paho.mqtt.client as mqtt
import pytest
from voicy.assistant.cancellation import CancellationScope
from voicy.assistant.commands import CommandHandler, CommandRegistry
from voicy.assistant.config import MqttConfig
from voicy.assistant.events import EventHub
from voicy.assistant.intent_parsers import build_default_chain
from voicy.assistant.models import CommandResult, IntentResult
from voicy.assistant.session import VoiceAssistantSession
from voicy.assistant.speech import Recognizer, Synthesizer

# ============================================================================
# Pytest Configuration
# ============================================================================


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio backend for async tests."""
    return "asyncio"


@pytest.fixture
def mock_logger():
    """Mock with spec=logging.Logger so only real logger methods can be called."""
    return Mock(spec=logging.Logger)


# ============================================================================
# Speech Fakes
# ============================================================================


class ScriptedRecognizer(Recognizer):
    """Returns scripted results in order, then blocks until cancelled.

    An item that is an exception instance is raised instead of returned.
    """

    def __init__(self, results=()) -> None:
        self.results = list(results)
        self.calls = 0
        self.cancellations = 0
        self.in_flight = False

    async def recognize(self, scope: CancellationScope) -> str:
        self.calls += 1
        if self.results:
            item = self.results.pop(0)
            await asyncio.sleep(0)
            if isinstance(item, BaseException):
                raise item
            return item
        self.in_flight = True
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancellations += 1
            raise
        finally:
            self.in_flight = False
        return ""


class RecordingSynthesizer(Synthesizer):
    def __init__(self, error: Exception | None = None) -> None:
        self.spoken: list[str] = []
        self.error = error

    async def speak(self, text: str, scope: CancellationScope) -> None:
        self.spoken.append(text)
        if self.error is not None:
            raise self.error


class RecordingHandler(CommandHandler):
    def __init__(
        self,
        intent_name: str,
        result: CommandResult | None = None,
        *,
        error: Exception | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.intent_name = intent_name
        self.result = result or CommandResult.ok()
        self.error = error
        self.gate = gate
        self.calls: list[IntentResult] = []

    async def execute(self, intent: IntentResult, scope: CancellationScope) -> CommandResult:
        self.calls.append(intent)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def recognizer():
    return ScriptedRecognizer()


@pytest.fixture
def synthesizer():
    return RecordingSynthesizer()


@pytest.fixture
def make_handler() -> Callable[..., RecordingHandler]:
    """Factory for RecordingHandler instances.

    Usage:
        handler = make_handler("GetTime", CommandResult.ok("It's noon."))
    """
    return RecordingHandler


@pytest.fixture
def events():
    return EventHub()


@pytest.fixture
def make_session(recognizer, synthesizer, events):
    """Factory building a session around the scripted fakes and the default chain."""

    def _create(handlers=(), resolver=None, **kwargs) -> VoiceAssistantSession:
        kwargs.setdefault("processing_poll_seconds", 0.01)
        return VoiceAssistantSession(
            recognizer=recognizer,
            synthesizer=synthesizer,
            resolver=resolver or build_default_chain(),
            registry=CommandRegistry(handlers),
            events=events,
            **kwargs,
        )

    return _create


@pytest.fixture
def wait_until():
    """Poll ``predicate`` on the running loop until it holds or the timeout expires."""

    async def _wait(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        async with asyncio.timeout(timeout):
            while not predicate():
                await asyncio.sleep(0.005)

    return _wait


# ============================================================================
# MQTT Fixtures
# ============================================================================


@pytest.fixture
def mqtt_config():
    """Create a basic MQTT configuration for testing."""
    return MqttConfig(
        host="localhost",
        port=1883,
        username=None,
        password=None,
        tls_enabled=False,
        cert=None,
        key=None,
        ca_cert=None,
        topic_base="voicy/test-host",
    )


@pytest.fixture
def mock_mqtt_client():
    """Mock paho client whose publish() returns a successful MQTTMessageInfo."""
    client = Mock(spec=mqtt.Client)
    message_info = Mock(spec=mqtt.MQTTMessageInfo)
    message_info.rc = mqtt.MQTT_ERR_SUCCESS
    client.publish = Mock(return_value=message_info)
    client.is_connected = Mock(return_value=True)
    return client
