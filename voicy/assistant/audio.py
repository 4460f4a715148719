"""Audio input/output helpers for the assistant."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import os
import shutil
import sys
from array import array
from asyncio.subprocess import Process

from .config import MicConfig, PhraseConfig


class ArecordStream:
    """Capture PCM audio by shelling out to ``arecord`` (ALSA)."""

    def __init__(
        self,
        command: list[str],
        bytes_per_chunk: int,
        logger: logging.Logger | None = None,
    ) -> None:
        self.command = command
        self.bytes_per_chunk = bytes_per_chunk
        self._proc: Process | None = None
        self._logger = logger or logging.getLogger(__name__)

    @property
    def running(self) -> bool:
        return self._proc is not None

    async def start(self) -> None:
        if self._proc:
            return
        self._logger.debug("Starting microphone capture: %s", " ".join(self.command))
        self._proc = await asyncio.create_subprocess_exec(
            *self.command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

    async def read_chunk(self) -> bytes:
        if not self._proc or not self._proc.stdout:
            raise RuntimeError("Microphone stream is not running")
        try:
            return await self._proc.stdout.readexactly(self.bytes_per_chunk)
        except asyncio.IncompleteReadError as exc:
            raise RuntimeError("Microphone stream ended unexpectedly") from exc

    async def stop(self) -> None:
        proc = self._proc
        if not proc:
            return
        self._proc = None
        self._logger.debug("Stopping microphone capture")
        with contextlib.suppress(ProcessLookupError):
            proc.terminate()
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(proc.wait(), timeout=2)


class AplaySink:
    """Play PCM audio via ``pw-play``/``paplay``/``aplay``."""

    def __init__(self, binary: str | None = None, logger: logging.Logger | None = None) -> None:
        env_override = os.environ.get("VOICY_AUDIO_PLAYER")
        if binary is None and env_override:
            binary = env_override
        self.binary = binary or "auto"
        self._proc: Process | None = None
        self._logger = logger or logging.getLogger(__name__)

    async def start(self, rate: int, width: int, channels: int) -> None:
        await self.stop()
        player = _determine_player(self.binary, self._logger)
        cmd = build_player_command(player, rate, width, channels)
        self._logger.debug("Starting playback (%s): %s", player, " ".join(cmd))
        self._proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )

    async def write(self, chunk: bytes) -> None:
        if not self._proc or not self._proc.stdin:
            raise RuntimeError("Playback is not active")
        try:
            self._proc.stdin.write(chunk)
            await self._proc.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as exc:
            await self.stop()
            raise RuntimeError("Playback process exited unexpectedly") from exc

    async def stop(self) -> None:
        proc = self._proc
        if not proc:
            return
        self._proc = None
        self._logger.debug("Stopping playback")
        if proc.stdin:
            proc.stdin.close()
            with contextlib.suppress(BrokenPipeError, ConnectionResetError):
                await proc.stdin.wait_closed()
        try:
            await asyncio.wait_for(proc.wait(), timeout=2)
        except (asyncio.TimeoutError, asyncio.CancelledError):
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            raise


def compute_rms(chunk: bytes, sample_width: int) -> int:
    """Compute RMS (Root Mean Square) for an audio chunk."""
    if not chunk or sample_width <= 0:
        return 0
    frames = len(chunk) // sample_width
    if frames <= 0:
        return 0
    typecode = {1: "b", 2: "h", 4: "i"}.get(sample_width)
    if not typecode:
        return 0
    samples = array(typecode)
    samples.frombytes(chunk[: frames * sample_width])
    if sample_width > 1 and sys.byteorder != "little":
        samples.byteswap()
    total = math.fsum(value * value for value in samples)
    return int(math.sqrt(total / frames))


async def record_phrase(mic: ArecordStream, mic_config: MicConfig, phrase: PhraseConfig) -> bytes | None:
    """Record one phrase: wait for speech, then stop after a run of silence.

    Returns ``None`` when no chunk rises above the RMS floor within
    ``phrase.no_speech_seconds``.
    """
    chunk_ms = mic_config.chunk_ms
    min_chunks = int(max(1, (phrase.min_seconds * 1000) / chunk_ms))
    max_chunks = int(max(1, (phrase.max_seconds * 1000) / chunk_ms))
    silence_chunks = int(max(1, phrase.silence_ms / chunk_ms))
    idle_chunks = int(max(1, (phrase.no_speech_seconds * 1000) / chunk_ms))

    waited = 0
    while True:
        chunk = await mic.read_chunk()
        if compute_rms(chunk, mic_config.width) >= phrase.rms_floor:
            break
        waited += 1
        if waited >= idle_chunks:
            return None

    buffer = bytearray(chunk)
    silence_run = 0
    chunks = 1
    while chunks < max_chunks:
        chunk = await mic.read_chunk()
        buffer.extend(chunk)
        if compute_rms(chunk, mic_config.width) < phrase.rms_floor and chunks >= min_chunks:
            silence_run += 1
            if silence_run >= silence_chunks:
                break
        else:
            silence_run = 0
        chunks += 1
    return bytes(buffer)


def _alsa_format(width: int) -> str:
    return {1: "U8", 2: "S16_LE", 3: "S24_LE", 4: "S32_LE"}.get(width, "S16_LE")


def _supported_player(binary: str) -> bool:
    if os.path.isabs(binary):
        return os.access(binary, os.X_OK)
    return shutil.which(binary) is not None


def build_player_command(player: str, rate: int, width: int, channels: int) -> list[str]:
    if player == "pw-play" and width in (1, 2, 4):
        fmt = {1: "s8", 2: "s16", 4: "s32"}[width]
        return ["pw-play", "--raw", "--rate", str(rate), "--channels", str(channels), "--format", fmt, "-"]
    if player == "paplay":
        fmt = {1: "s8", 2: "s16le", 3: "s24le", 4: "s32le"}.get(width, "s16le")
        return ["paplay", "--raw", "--rate", str(rate), "--channels", str(channels), f"--format={fmt}", "-"]
    return ["aplay", "-q", "-t", "raw", "-f", _alsa_format(width), "-c", str(channels), "-r", str(rate), "-"]


def _determine_player(preferred: str, logger: logging.Logger) -> str:
    if preferred != "auto":
        if _supported_player(preferred):
            return preferred
        logger.warning("Requested audio player '%s' not found; falling back to auto-detection", preferred)
    for candidate in ("pw-play", "paplay", "aplay"):
        if _supported_player(candidate):
            return candidate
    return "aplay"
