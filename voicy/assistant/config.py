"""Configuration helpers for the Voicy assistant."""

from __future__ import annotations

import os
import shlex
import socket
from dataclasses import dataclass
from pathlib import Path

from voicy.utils import parse_bool, parse_float, parse_int, split_csv

DEFAULT_WAKE_PHRASE = "hey voicy"
DEFAULT_ACTIVITY_LOG_SIZE = 100
DEFAULT_CONFIDENCE_THRESHOLD = 0.6
DEFAULT_LANGUAGE_API_VERSION = "2023-04-01"


def _strip_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


@dataclass(frozen=True)
class WyomingEndpoint:
    host: str
    port: int
    model: str | None = None


@dataclass(frozen=True)
class MicConfig:
    command: list[str]
    rate: int
    width: int
    channels: int
    chunk_ms: int

    @property
    def bytes_per_chunk(self) -> int:
        samples = int(self.rate * (self.chunk_ms / 1000))
        return samples * self.width * self.channels


@dataclass(frozen=True)
class PhraseConfig:
    min_seconds: float
    max_seconds: float
    silence_ms: int
    rms_floor: int
    no_speech_seconds: float


@dataclass(frozen=True)
class SessionConfig:
    use_wake_word: bool
    wake_phrase: str
    activity_log_size: int
    processing_poll_seconds: float


@dataclass(frozen=True)
class LanguageServiceConfig:
    """Azure AI Language (conversational language understanding) settings."""

    endpoint: str | None
    api_key: str | None
    project_name: str | None
    deployment_name: str | None
    api_version: str
    confidence_threshold: float
    timeout: float

    @property
    def configured(self) -> bool:
        return bool(self.endpoint and self.api_key and self.project_name and self.deployment_name)


@dataclass(frozen=True)
class MqttConfig:
    host: str | None
    port: int
    username: str | None
    password: str | None
    tls_enabled: bool
    cert: str | None
    key: str | None
    ca_cert: str | None
    topic_base: str


@dataclass(frozen=True)
class PlatformConfig:
    screenshot_dir: Path
    folder_search_paths: tuple[Path, ...]


@dataclass(frozen=True)
class AssistantConfig:
    hostname: str
    language: str | None
    session: SessionConfig
    language_service: LanguageServiceConfig
    mic: MicConfig
    phrase: PhraseConfig
    stt_endpoint: WyomingEndpoint
    tts_endpoint: WyomingEndpoint
    tts_voice: str | None
    mqtt: MqttConfig
    platform: PlatformConfig

    @staticmethod
    def from_env(env: dict[str, str] | None = None) -> AssistantConfig:
        source = env if env is not None else os.environ
        hostname = source.get("VOICY_HOSTNAME") or socket.gethostname()

        wake_phrase = (source.get("VOICY_WAKE_PHRASE") or DEFAULT_WAKE_PHRASE).strip().lower()
        session = SessionConfig(
            use_wake_word=parse_bool(source.get("VOICY_USE_WAKE_WORD"), False),
            wake_phrase=wake_phrase or DEFAULT_WAKE_PHRASE,
            activity_log_size=max(1, parse_int(source.get("VOICY_ACTIVITY_LOG_SIZE"), DEFAULT_ACTIVITY_LOG_SIZE)),
            processing_poll_seconds=max(0.01, parse_int(source.get("VOICY_PROCESSING_POLL_MS"), 100) / 1000),
        )

        endpoint = _strip_or_none(source.get("AZURE_LANGUAGE_ENDPOINT"))
        language_service = LanguageServiceConfig(
            endpoint=endpoint.rstrip("/") if endpoint else None,
            api_key=_strip_or_none(source.get("AZURE_LANGUAGE_API_KEY")),
            project_name=_strip_or_none(source.get("AZURE_LANGUAGE_PROJECT")),
            deployment_name=_strip_or_none(source.get("AZURE_LANGUAGE_DEPLOYMENT")),
            api_version=source.get("AZURE_LANGUAGE_API_VERSION") or DEFAULT_LANGUAGE_API_VERSION,
            confidence_threshold=_clamp(
                parse_float(source.get("AZURE_LANGUAGE_CONFIDENCE"), DEFAULT_CONFIDENCE_THRESHOLD), 0.0, 1.0
            ),
            timeout=max(1.0, parse_float(source.get("AZURE_LANGUAGE_TIMEOUT_SECONDS"), 10.0)),
        )

        mic = MicConfig(
            command=shlex.split(
                source.get(
                    "VOICY_MIC_CMD",
                    "arecord -q -t raw -f S16_LE -c 1 -r 16000 -",
                )
            ),
            rate=parse_int(source.get("VOICY_MIC_RATE"), 16000),
            width=parse_int(source.get("VOICY_MIC_WIDTH"), 2),
            channels=parse_int(source.get("VOICY_MIC_CHANNELS"), 1),
            chunk_ms=parse_int(source.get("VOICY_MIC_CHUNK_MS"), 30),
        )
        phrase = PhraseConfig(
            min_seconds=parse_float(source.get("VOICY_MIN_PHRASE_SECONDS"), 1.0),
            max_seconds=parse_float(source.get("VOICY_MAX_PHRASE_SECONDS"), 8.0),
            silence_ms=parse_int(source.get("VOICY_SILENCE_MS"), 1000),
            rms_floor=parse_int(source.get("VOICY_RMS_THRESHOLD"), 120),
            no_speech_seconds=parse_float(source.get("VOICY_NO_SPEECH_SECONDS"), 15.0),
        )

        stt_endpoint = WyomingEndpoint(
            host=source.get("WYOMING_WHISPER_HOST", "127.0.0.1"),
            port=parse_int(source.get("WYOMING_WHISPER_PORT"), 10300),
            model=source.get("VOICY_STT_MODEL"),
        )
        tts_endpoint = WyomingEndpoint(
            host=source.get("WYOMING_PIPER_HOST", "127.0.0.1"),
            port=parse_int(source.get("WYOMING_PIPER_PORT"), 10200),
        )

        topic_base = source.get("VOICY_TOPIC_BASE") or f"voicy/{hostname}"
        mqtt = MqttConfig(
            host=_strip_or_none(source.get("MQTT_HOST")),
            port=parse_int(source.get("MQTT_PORT"), 1883),
            username=_strip_or_none(source.get("MQTT_USER") or source.get("MQTT_USERNAME")),
            password=_strip_or_none(source.get("MQTT_PASS") or source.get("MQTT_PASSWORD")),
            tls_enabled=parse_bool(source.get("MQTT_TLS_ENABLED"), False),
            cert=_strip_or_none(source.get("MQTT_CERT")),
            key=_strip_or_none(source.get("MQTT_KEY")),
            ca_cert=_strip_or_none(source.get("MQTT_CA_CERT")),
            topic_base=topic_base.rstrip("/"),
        )

        home = Path(source.get("HOME") or Path.home())
        screenshot_dir = Path(source.get("VOICY_SCREENSHOT_DIR") or home / "Desktop").expanduser()
        search_paths = tuple(Path(item).expanduser() for item in split_csv(source.get("VOICY_FOLDER_SEARCH_PATHS")))
        if not search_paths:
            search_paths = (home / "Desktop", home / "Documents", home / "Downloads", home)
        platform = PlatformConfig(screenshot_dir=screenshot_dir, folder_search_paths=search_paths)

        return AssistantConfig(
            hostname=hostname,
            language=source.get("VOICY_LANGUAGE"),
            session=session,
            language_service=language_service,
            mic=mic,
            phrase=phrase,
            stt_endpoint=stt_endpoint,
            tts_endpoint=tts_endpoint,
            tts_voice=source.get("VOICY_TTS_VOICE"),
            mqtt=mqtt,
            platform=platform,
        )


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
