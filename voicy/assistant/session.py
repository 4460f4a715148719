"""
Voice assistant session: listen, gate on the wake phrase, resolve, dispatch, speak

The session owns one background listening loop per ``start_listening()`` call
and a shared parse -> dispatch -> speak pipeline that both the loop and
``process_text_command()`` go through. Commands are serialized by an
``asyncio.Lock``; while one is pending or running the loop does not call the
recognizer, and a text command arriving mid-recognition interrupts it.

Every transition is reported through the ``EventHub``: activity log entries,
recognized intents, listening state changes and command results.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import threading
from typing import TYPE_CHECKING

from .activity_log import ActivityEntry
from .cancellation import CancellationScope
from .config import DEFAULT_WAKE_PHRASE
from .events import CommandExecuted, EventHub, IntentRecognized, ListeningStateChanged
from .models import IntentResult
from .speech import RecognitionStatus, classify_recognition

if TYPE_CHECKING:
    from .commands import CommandRegistry
    from .intent_parsers import IntentResolverChain
    from .speech import Recognizer, Synthesizer

LOGGER = logging.getLogger("voicy-assistant")

WAKE_ACKNOWLEDGEMENT = "I'm listening"
UNKNOWN_COMMAND_REPLY = "I didn't understand that command."
HANDLER_ERROR_REPLY = "Sorry, there was an error executing your command."


class SessionPhase(enum.Enum):
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"


class SessionState:
    """Listening/processing/armed flags with guarded transitions.

    ``processing`` counts commands that are pending or executing so the loop
    stays off the recognizer until all of them have finished.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listening = False
        self._processing = 0
        self._armed = False

    def try_start_listening(self) -> bool:
        with self._lock:
            if self._listening:
                return False
            self._listening = True
            return True

    def try_stop_listening(self) -> bool:
        with self._lock:
            if not self._listening:
                return False
            self._listening = False
            self._armed = False
            return True

    def begin_processing(self) -> None:
        with self._lock:
            self._processing += 1

    def end_processing(self) -> None:
        with self._lock:
            self._processing = max(0, self._processing - 1)

    def arm(self) -> bool:
        with self._lock:
            if self._armed:
                return False
            self._armed = True
            return True

    def disarm(self) -> None:
        with self._lock:
            self._armed = False

    @property
    def is_listening(self) -> bool:
        with self._lock:
            return self._listening

    @property
    def is_processing(self) -> bool:
        with self._lock:
            return self._processing > 0

    @property
    def wake_word_armed(self) -> bool:
        with self._lock:
            return self._armed

    @property
    def phase(self) -> SessionPhase:
        with self._lock:
            if self._processing:
                return SessionPhase.PROCESSING
            if self._listening:
                return SessionPhase.LISTENING
            return SessionPhase.IDLE


class VoiceAssistantSession:
    def __init__(
        self,
        *,
        recognizer: Recognizer,
        synthesizer: Synthesizer,
        resolver: IntentResolverChain,
        registry: CommandRegistry,
        events: EventHub | None = None,
        use_wake_word: bool = False,
        wake_phrase: str = DEFAULT_WAKE_PHRASE,
        processing_poll_seconds: float = 0.1,
        logger: logging.Logger | None = None,
    ) -> None:
        self.recognizer = recognizer
        self.synthesizer = synthesizer
        self.resolver = resolver
        self.registry = registry
        self.logger = logger or LOGGER
        self.events = events or EventHub(logger=self.logger)
        self.state = SessionState()
        self.processing_poll_seconds = processing_poll_seconds
        self._use_wake_word = use_wake_word
        self._wake_phrase = (wake_phrase or DEFAULT_WAKE_PHRASE).strip().lower()
        self._command_lock = asyncio.Lock()
        self._scope_lock = threading.Lock()
        self._scope: CancellationScope | None = None
        self._loop_task: asyncio.Task | None = None
        self._recognition_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def use_wake_word(self) -> bool:
        return self._use_wake_word

    @use_wake_word.setter
    def use_wake_word(self, enabled: bool) -> None:
        self._use_wake_word = bool(enabled)
        if not enabled:
            self.state.disarm()

    @property
    def wake_phrase(self) -> str:
        return self._wake_phrase

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    @property
    def is_listening(self) -> bool:
        return self.state.is_listening

    @property
    def is_processing(self) -> bool:
        return self.state.is_processing

    @property
    def wake_word_armed(self) -> bool:
        return self.state.wake_word_armed

    @property
    def activity_log(self) -> list[ActivityEntry]:
        return self.events.activity_log.entries()

    # ------------------------------------------------------------------
    # Listening control
    # ------------------------------------------------------------------
    def start_listening(self) -> asyncio.Task | None:
        """Start the background loop; returns its task, or None if already listening."""
        loop = asyncio.get_running_loop()
        if not self.state.try_start_listening():
            self._log("Already listening")
            return None
        scope = CancellationScope("listening")
        with self._scope_lock:
            self._scope = scope
        self.events.publish(ListeningStateChanged(True))
        self._log("Started listening")
        task = loop.create_task(self._listen(scope), name="voicy-listen")
        self._loop_task = task
        return task

    def stop_listening(self) -> None:
        """Cancel the active listening scope. Safe to call from any thread, and when idle."""
        if not self.state.try_stop_listening():
            return
        with self._scope_lock:
            scope, self._scope = self._scope, None
        if scope is not None:
            scope.cancel()
        self.events.publish(ListeningStateChanged(False))
        self._log("Stopped listening")

    async def close(self) -> None:
        self.stop_listening()
        task, self._loop_task = self._loop_task, None
        if task is not None and not task.done():
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise

    async def process_text_command(self, text: str, scope: CancellationScope | None = None) -> None:
        """Run one utterance through the pipeline, bypassing the recognizer."""
        await self._run_pipeline(text, scope or CancellationScope("text-command"))

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------
    async def _listen(self, scope: CancellationScope) -> None:
        try:
            # Attach from inside the try so a stop before the first step still unwinds here.
            scope.raise_if_cancelled()
            scope.attach(asyncio.current_task())
            while True:
                scope.raise_if_cancelled()
                if self.state.is_processing:
                    await scope.sleep(self.processing_poll_seconds)
                    continue

                gated = self._use_wake_word and not self.state.wake_word_armed
                self._log("Listening for wake word..." if gated else "Listening for voice input...")
                try:
                    text = await self._recognize_once(scope)
                except Exception as exc:
                    self.logger.error("[session] Recognizer failed: %s", exc, exc_info=True)
                    self._log(f"Error during recognition: {exc}")
                    await scope.sleep(self.processing_poll_seconds)
                    continue
                if text is None:
                    continue

                status, transcript = classify_recognition(text)
                if status is not RecognitionStatus.RECOGNIZED:
                    self._log(f"Recognition issue: {transcript or 'no speech recognized'}")
                    continue

                if self._use_wake_word and not self.state.wake_word_armed:
                    if self._wake_phrase in transcript.lower():
                        self.state.arm()
                        self._log("Wake word detected")
                        await self._speak(WAKE_ACKNOWLEDGEMENT, scope)
                    else:
                        self.logger.debug("[session] Ignoring transcript without wake phrase: %s", transcript)
                    continue

                self._log(f"Recognized: {transcript}")
                await self._run_pipeline(transcript, scope)
                if self._use_wake_word:
                    self.state.disarm()
        except asyncio.CancelledError:
            self._log("Listening cancelled")
            if not scope.cancelled:
                raise
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                current.uncancel()
        finally:
            self._release(scope)

    async def _recognize_once(self, scope: CancellationScope) -> str | None:
        """One recognizer call; None when a text command interrupted it."""
        task = asyncio.ensure_future(self.recognizer.recognize(scope))
        scope.attach(task)
        self._recognition_task = task
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if scope.cancelled or (current is not None and current.cancelling()):
                raise
            self._log("Recognition interrupted")
            return None
        finally:
            self._recognition_task = None

    def _interrupt_recognition(self) -> None:
        task = self._recognition_task
        if task is not None and not task.done():
            task.cancel()

    def _release(self, scope: CancellationScope) -> None:
        with self._scope_lock:
            if self._scope is not scope:
                return
            self._scope = None
        if self.state.try_stop_listening():
            self.events.publish(ListeningStateChanged(False))

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    async def _run_pipeline(self, transcript: str, scope: CancellationScope) -> None:
        self.state.begin_processing()
        try:
            self._interrupt_recognition()
            task = asyncio.ensure_future(self._run_locked(transcript, scope))
            scope.attach(task)
            await task
        finally:
            self.state.end_processing()

    async def _run_locked(self, transcript: str, scope: CancellationScope) -> None:
        async with self._command_lock:
            scope.raise_if_cancelled()
            await self._handle(transcript, scope)

    async def _handle(self, transcript: str, scope: CancellationScope) -> None:
        intent = await self._resolve(transcript)
        self.events.publish(IntentRecognized(intent))
        self._log(f"Intent recognized: {intent.name}")

        if intent.is_unknown:
            await self._speak(UNKNOWN_COMMAND_REPLY, scope)
            return

        try:
            found, result = await self.registry.dispatch(intent, scope)
        except Exception as exc:
            self.logger.error("[session] Handler for %s failed: %s", intent.name, exc, exc_info=True)
            self._log(f"Error executing {intent.name}: {exc}")
            await self._speak(HANDLER_ERROR_REPLY, scope)
            return

        if not found or result is None:
            self._log(f"No handler registered for intent: {intent.name}")
            await self._speak(f"I don't know how to {intent.name}.", scope)
            return

        self.events.publish(CommandExecuted(result))
        if result.success:
            self._log(f"Command {intent.name} succeeded")
            if result.spoken_output:
                await self._speak(result.spoken_output, scope)
        else:
            self._log(f"Command {intent.name} failed: {result.failure_reason}")
            await self._speak(f"Sorry, I couldn't do that. {result.failure_reason}", scope)

    async def _resolve(self, transcript: str) -> IntentResult:
        try:
            return await self.resolver.resolve(transcript)
        except Exception as exc:
            self.logger.error("[session] Intent resolution failed: %s", exc, exc_info=True)
            return IntentResult.unknown()

    async def _speak(self, text: str, scope: CancellationScope) -> None:
        try:
            await self.synthesizer.speak(text, scope)
        except Exception as exc:
            self.logger.warning("[session] Speech failed for %r: %s", text, exc)
            self._log(f"Speech failed: {exc}")

    def _log(self, message: str) -> None:
        self.events.log_activity(message)
