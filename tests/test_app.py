"""Tests for wiring the session from configuration."""

from __future__ import annotations

from unittest.mock import AsyncMock, Mock

import pytest
from voicy.assistant.app import AssistantRuntime, build_handlers, build_session
from voicy.assistant.config import AssistantConfig
from voicy.assistant.events import ListeningStateChanged
from voicy.assistant.language_service import AzureLanguageIntentParser
from voicy.assistant.models import GET_TIME, OPEN_FOLDER, TAKE_SCREENSHOT
from voicy.assistant.mqtt import AssistantMqtt
from voicy.assistant.speech import WyomingRecognizer, WyomingSynthesizer

pytestmark = pytest.mark.anyio


@pytest.fixture
def env(tmp_path):
    return {"VOICY_HOSTNAME": "desk", "HOME": str(tmp_path), "VOICY_USE_WAKE_WORD": "true"}


def test_builtin_handlers_cover_every_intent(env):
    handlers = build_handlers(AssistantConfig.from_env(env))
    assert sorted(handler.intent_name for handler in handlers) == [GET_TIME, OPEN_FOLDER, TAKE_SCREENSHOT]


def test_build_session_defaults(env):
    session = build_session(AssistantConfig.from_env(env))

    assert isinstance(session.recognizer, WyomingRecognizer)
    assert isinstance(session.synthesizer, WyomingSynthesizer)
    assert session.use_wake_word is True
    assert session.wake_phrase == "hey voicy"
    assert [parser.name for parser in session.resolver.parsers] == ["patterns", "rules"]
    assert session.registry.intent_names == [GET_TIME, OPEN_FOLDER, TAKE_SCREENSHOT]


def test_build_session_uses_configured_log_size(env):
    env["VOICY_ACTIVITY_LOG_SIZE"] = "25"
    config = AssistantConfig.from_env(env)

    session = build_session(config)

    assert session.events.activity_log.capacity == config.session.activity_log_size == 25


def test_build_session_adds_cloud_parser_when_configured(env):
    env.update(
        {
            "AZURE_LANGUAGE_ENDPOINT": "https://voicy.cognitiveservices.azure.com",
            "AZURE_LANGUAGE_API_KEY": "k",
            "AZURE_LANGUAGE_PROJECT": "p",
            "AZURE_LANGUAGE_DEPLOYMENT": "d",
        }
    )
    session = build_session(AssistantConfig.from_env(env))

    assert isinstance(session.resolver.parsers[0], AzureLanguageIntentParser)


async def test_text_command_through_built_session(env, synthesizer):
    session = build_session(AssistantConfig.from_env(env), recognizer=Mock(), synthesizer=synthesizer)

    await session.process_text_command("what time is it")

    assert len(synthesizer.spoken) == 1
    assert synthesizer.spoken[0].startswith("It's ")


async def test_runtime_publishes_when_mqtt_connects(env, synthesizer):
    config = AssistantConfig.from_env(env)
    session = build_session(config, recognizer=Mock(), synthesizer=synthesizer)
    mqtt = Mock(spec=AssistantMqtt)
    mqtt.connect.return_value = True
    runtime = AssistantRuntime(config, session=session, mqtt=mqtt)

    runtime.start()
    session.events.publish(ListeningStateChanged(True))
    await runtime.shutdown()
    session.events.publish(ListeningStateChanged(False))

    mqtt.publish.assert_called_once_with("voicy/desk/listening", "ON", retain=True)
    mqtt.disconnect.assert_called_once()


async def test_runtime_closes_language_parser(env):
    runtime = AssistantRuntime(AssistantConfig.from_env(env), mqtt=Mock(spec=AssistantMqtt))
    runtime.language_parser = Mock(spec=AzureLanguageIntentParser)
    runtime.language_parser.close = AsyncMock()

    await runtime.shutdown()

    runtime.language_parser.close.assert_awaited_once()
