"""Wyoming STT/TTS round-trips used by the speech adapters."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from wyoming.asr import Transcribe, Transcript
from wyoming.audio import AudioChunk, AudioStart, AudioStop
from wyoming.client import AsyncTcpClient
from wyoming.event import Event
from wyoming.tts import Synthesize, SynthesizeVoice

from voicy.utils import await_with_timeout, chunk_bytes

from .audio import AplaySink
from .config import MicConfig, WyomingEndpoint

LoggerLike = logging.Logger | None


async def transcribe_audio(
    audio_bytes: bytes,
    *,
    endpoint: WyomingEndpoint,
    mic: MicConfig,
    language: str | None = None,
    model: str | None = None,
    timeout: float | None = None,
    logger: LoggerLike = None,
) -> str | None:
    """Send PCM audio to a Wyoming STT endpoint and return the transcript text."""

    client = AsyncTcpClient(endpoint.host, endpoint.port)
    await await_with_timeout(client.connect(), timeout)
    try:
        await await_with_timeout(
            client.write_event(Transcribe(name=model or endpoint.model, language=language).event()),
            timeout,
        )
        await await_with_timeout(
            client.write_event(AudioStart(rate=mic.rate, width=mic.width, channels=mic.channels).event()),
            timeout,
        )
        for chunk in chunk_bytes(audio_bytes, mic.bytes_per_chunk):
            event = AudioChunk(rate=mic.rate, width=mic.width, channels=mic.channels, audio=chunk).event()
            await await_with_timeout(client.write_event(event), timeout)
        await await_with_timeout(client.write_event(AudioStop().event()), timeout)
        while True:
            event = await await_with_timeout(client.read_event(), timeout)
            if event is None:
                if logger:
                    logger.debug("[stt] Connection closed before transcript returned")
                return None
            if Transcript.is_type(event.type):
                return Transcript.from_event(event).text
    finally:
        await client.disconnect()


async def play_tts_stream(
    text: str,
    *,
    endpoint: WyomingEndpoint,
    sink: AplaySink,
    voice_name: str | None = None,
    timeout: float | None = None,
    logger: LoggerLike = None,
) -> int:
    """Synthesize ``text`` and stream the audio into ``sink``; returns the chunk count."""

    started = False
    chunks = 0
    try:
        stream = _tts_event_stream(text, endpoint=endpoint, voice_name=voice_name, timeout=timeout)
        async with aclosing(stream) as events:
            async for event in events:
                if AudioStart.is_type(event.type):
                    audio_start = AudioStart.from_event(event)
                    await sink.start(audio_start.rate, audio_start.width, audio_start.channels)
                    started = True
                elif AudioChunk.is_type(event.type):
                    if not started:
                        continue
                    await sink.write(AudioChunk.from_event(event).audio)
                    chunks += 1
                elif AudioStop.is_type(event.type):
                    break
    finally:
        if started:
            await sink.stop()
    if logger:
        logger.debug("[tts] Played %d chunks for %r", chunks, text)
    return chunks


async def _tts_event_stream(
    text: str,
    *,
    endpoint: WyomingEndpoint,
    voice_name: str | None = None,
    timeout: float | None = None,
) -> AsyncIterator[Event]:
    client = AsyncTcpClient(endpoint.host, endpoint.port)
    await await_with_timeout(client.connect(), timeout)
    try:
        voice = SynthesizeVoice(name=voice_name) if voice_name else None
        await await_with_timeout(client.write_event(Synthesize(text=text, voice=voice).event()), timeout)
        while True:
            event = await await_with_timeout(client.read_event(), timeout)
            if event is None:
                break
            yield event
            if AudioStop.is_type(event.type):
                break
    finally:
        await client.disconnect()
