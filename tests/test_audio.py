"""Tests for RMS computation, phrase capture and player command selection."""

from __future__ import annotations

import struct
from unittest.mock import AsyncMock, Mock

import pytest
from voicy.assistant.audio import ArecordStream, build_player_command, compute_rms, record_phrase
from voicy.assistant.config import MicConfig, PhraseConfig

pytestmark = pytest.mark.anyio

CHUNK_SAMPLES = 480


def chunk(amplitude: int) -> bytes:
    return struct.pack(f"<{CHUNK_SAMPLES}h", *([amplitude] * CHUNK_SAMPLES))


@pytest.fixture
def mic_config():
    return MicConfig(command=["arecord"], rate=16000, width=2, channels=1, chunk_ms=30)


@pytest.fixture
def phrase():
    # 0.3 s minimum, 0.9 s maximum, 0.09 s of silence ends the phrase, 0.3 s with no speech gives up
    return PhraseConfig(min_seconds=0.3, max_seconds=0.9, silence_ms=90, rms_floor=500, no_speech_seconds=0.3)


def scripted_mic(chunks):
    mic = Mock(spec=ArecordStream)
    mic.read_chunk = AsyncMock(side_effect=list(chunks))
    return mic


class TestComputeRms:
    def test_silence_is_zero(self):
        assert compute_rms(chunk(0), 2) == 0

    def test_constant_amplitude(self):
        assert compute_rms(chunk(1000), 2) == 1000

    def test_empty_and_unsupported_widths(self):
        assert compute_rms(b"", 2) == 0
        assert compute_rms(b"\x00\x01\x02", 3) == 0


class TestRecordPhrase:
    async def test_returns_none_without_speech(self, mic_config, phrase):
        mic = scripted_mic([chunk(0)] * 10)
        assert await record_phrase(mic, mic_config, phrase) is None
        assert mic.read_chunk.await_count == 10

    async def test_stops_after_trailing_silence(self, mic_config, phrase):
        speech = [chunk(2000)] * 10
        silence = [chunk(0)] * 3
        mic = scripted_mic([chunk(0), *speech, *silence, chunk(2000)])

        audio = await record_phrase(mic, mic_config, phrase)

        assert audio == b"".join(speech + silence)

    async def test_caps_at_max_length(self, mic_config, phrase):
        mic = scripted_mic([chunk(2000)] * 40)

        audio = await record_phrase(mic, mic_config, phrase)

        assert len(audio) == 30 * len(chunk(0))


class TestPlayerCommand:
    def test_aplay_default(self):
        assert build_player_command("aplay", 22050, 2, 1) == [
            "aplay", "-q", "-t", "raw", "-f", "S16_LE", "-c", "1", "-r", "22050", "-",
        ]

    def test_pw_play(self):
        assert build_player_command("pw-play", 22050, 2, 1)[:2] == ["pw-play", "--raw"]

    def test_paplay_format(self):
        assert "--format=s16le" in build_player_command("paplay", 22050, 2, 1)
