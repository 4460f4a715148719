"""
Speech recognizer and synthesizer contracts plus Wyoming-backed adapters

Recognizers return the recognized text, or a sentinel-prefixed string for the
expected failure modes:

- ``CANCELED: ...`` recognition was cancelled
- ``ERROR: ...`` the backend failed
- ``NOMATCH: ...`` audio was captured but nothing was recognized

``classify_recognition`` turns that string contract into a status the session
can branch on without sniffing prefixes itself.
"""

from __future__ import annotations

import asyncio
import enum
import logging

from .audio import AplaySink, ArecordStream, record_phrase
from .cancellation import CancellationScope
from .config import MicConfig, PhraseConfig, WyomingEndpoint
from .wyoming import play_tts_stream, transcribe_audio

LOGGER = logging.getLogger(__name__)

CANCELED_PREFIX = "CANCELED"
ERROR_PREFIX = "ERROR"
NOMATCH_PREFIX = "NOMATCH"


class RecognitionStatus(enum.Enum):
    RECOGNIZED = "recognized"
    EMPTY = "empty"
    CANCELED = "canceled"
    ERROR = "error"
    NO_MATCH = "no_match"


_SENTINELS = (
    (CANCELED_PREFIX, RecognitionStatus.CANCELED),
    (ERROR_PREFIX, RecognitionStatus.ERROR),
    (NOMATCH_PREFIX, RecognitionStatus.NO_MATCH),
)


def classify_recognition(text: str | None) -> tuple[RecognitionStatus, str]:
    """Split a recognizer result into a status and the stripped text."""
    stripped = (text or "").strip()
    if not stripped:
        return RecognitionStatus.EMPTY, ""
    for prefix, status in _SENTINELS:
        if stripped.startswith(prefix):
            return status, stripped
    return RecognitionStatus.RECOGNIZED, stripped


class Recognizer:
    async def recognize(self, scope: CancellationScope) -> str:
        raise NotImplementedError


class Synthesizer:
    async def speak(self, text: str, scope: CancellationScope) -> None:
        raise NotImplementedError


class WyomingRecognizer(Recognizer):
    """Capture one phrase from the microphone and transcribe it over Wyoming."""

    def __init__(
        self,
        *,
        endpoint: WyomingEndpoint,
        mic_config: MicConfig,
        phrase: PhraseConfig,
        mic: ArecordStream | None = None,
        language: str | None = None,
        timeout: float | None = 30.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.mic_config = mic_config
        self.phrase = phrase
        self.logger = logger or LOGGER
        self.mic = mic or ArecordStream(mic_config.command, mic_config.bytes_per_chunk, self.logger)
        self.language = language
        self.timeout = timeout

    async def recognize(self, scope: CancellationScope) -> str:
        if scope.cancelled:
            return f"{CANCELED_PREFIX}: Operation was cancelled by the user."
        try:
            await self.mic.start()
            try:
                audio_bytes = await record_phrase(self.mic, self.mic_config, self.phrase)
            finally:
                await self.mic.stop()
            if not audio_bytes:
                return f"{NOMATCH_PREFIX}: No speech detected."
            transcript = await transcribe_audio(
                audio_bytes,
                endpoint=self.endpoint,
                mic=self.mic_config,
                language=self.language,
                timeout=self.timeout,
                logger=self.logger,
            )
        except (OSError, RuntimeError, asyncio.TimeoutError) as exc:
            self.logger.warning("Recognition failed: %s", exc)
            return f"{ERROR_PREFIX}: Recognition failed ({exc})."
        if not transcript or not transcript.strip():
            return f"{NOMATCH_PREFIX}: Speech could not be recognized."
        return transcript.strip()


class WyomingSynthesizer(Synthesizer):
    """Speak text through a Wyoming TTS server (Piper)."""

    def __init__(
        self,
        *,
        endpoint: WyomingEndpoint,
        sink: AplaySink | None = None,
        voice_name: str | None = None,
        timeout: float | None = 30.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.logger = logger or LOGGER
        self.sink = sink or AplaySink(logger=self.logger)
        self.voice_name = voice_name
        self.timeout = timeout

    async def speak(self, text: str, scope: CancellationScope) -> None:
        scope.raise_if_cancelled()
        await play_tts_stream(
            text,
            endpoint=self.endpoint,
            sink=self.sink,
            voice_name=self.voice_name,
            timeout=self.timeout,
            logger=self.logger,
        )
