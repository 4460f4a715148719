"""Tests for environment-driven configuration."""

from __future__ import annotations

from pathlib import Path

from voicy.assistant.config import DEFAULT_WAKE_PHRASE, AssistantConfig


def test_defaults_from_empty_env():
    config = AssistantConfig.from_env({"VOICY_HOSTNAME": "desk", "HOME": "/home/ada"})

    assert config.session.use_wake_word is False
    assert config.session.wake_phrase == DEFAULT_WAKE_PHRASE == "hey voicy"
    assert config.session.activity_log_size == 100
    assert config.session.processing_poll_seconds == 0.1
    assert not config.language_service.configured
    assert config.language_service.confidence_threshold == 0.6
    assert config.stt_endpoint.port == 10300
    assert config.tts_endpoint.port == 10200
    assert config.mic.bytes_per_chunk == 960
    assert config.mqtt.host is None
    assert config.mqtt.topic_base == "voicy/desk"
    assert config.platform.screenshot_dir == Path("/home/ada/Desktop")
    assert config.platform.folder_search_paths[-1] == Path("/home/ada")


def test_session_overrides():
    config = AssistantConfig.from_env(
        {
            "VOICY_USE_WAKE_WORD": "yes",
            "VOICY_WAKE_PHRASE": "  Hello Computer ",
            "VOICY_ACTIVITY_LOG_SIZE": "25",
            "VOICY_PROCESSING_POLL_MS": "250",
        }
    )

    assert config.session.use_wake_word is True
    assert config.session.wake_phrase == "hello computer"
    assert config.session.activity_log_size == 25
    assert config.session.processing_poll_seconds == 0.25


def test_language_service_settings():
    config = AssistantConfig.from_env(
        {
            "AZURE_LANGUAGE_ENDPOINT": "https://voicy.cognitiveservices.azure.com/",
            "AZURE_LANGUAGE_API_KEY": "secret",
            "AZURE_LANGUAGE_PROJECT": "voicy-commands",
            "AZURE_LANGUAGE_DEPLOYMENT": "production",
            "AZURE_LANGUAGE_CONFIDENCE": "1.7",
            "AZURE_LANGUAGE_TIMEOUT_SECONDS": "0",
        }
    )
    service = config.language_service

    assert service.configured
    assert service.endpoint == "https://voicy.cognitiveservices.azure.com"
    assert service.confidence_threshold == 1.0
    assert service.timeout == 1.0


def test_partial_language_service_is_not_configured():
    config = AssistantConfig.from_env({"AZURE_LANGUAGE_ENDPOINT": "https://x", "AZURE_LANGUAGE_API_KEY": "  "})
    assert not config.language_service.configured


def test_invalid_numbers_fall_back_to_defaults():
    config = AssistantConfig.from_env({"VOICY_ACTIVITY_LOG_SIZE": "lots", "WYOMING_WHISPER_PORT": "abc"})
    assert config.session.activity_log_size == 100
    assert config.stt_endpoint.port == 10300


def test_mqtt_and_folder_settings():
    config = AssistantConfig.from_env(
        {
            "MQTT_HOST": "broker.local",
            "MQTT_USER": "voicy",
            "MQTT_PASS": "pw",
            "VOICY_TOPIC_BASE": "home/office/voicy/",
            "VOICY_FOLDER_SEARCH_PATHS": "/srv/projects, /mnt/share",
            "VOICY_SCREENSHOT_DIR": "/tmp/shots",
        }
    )

    assert config.mqtt.host == "broker.local"
    assert config.mqtt.username == "voicy"
    assert config.mqtt.topic_base == "home/office/voicy"
    assert config.platform.folder_search_paths == (Path("/srv/projects"), Path("/mnt/share"))
    assert config.platform.screenshot_dir == Path("/tmp/shots")
