"""Typed session notifications and the hub that delivers them to subscribers."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from .activity_log import DEFAULT_CAPACITY, ActivityEntry, ActivityLog
from .models import CommandResult, IntentResult

LOGGER = logging.getLogger("voicy-assistant")


@dataclass(frozen=True)
class ActivityLogged:
    message: str
    timestamp: datetime


@dataclass(frozen=True)
class IntentRecognized:
    intent: IntentResult


@dataclass(frozen=True)
class ListeningStateChanged:
    listening: bool


@dataclass(frozen=True)
class CommandExecuted:
    result: CommandResult


AssistantEvent = ActivityLogged | IntentRecognized | ListeningStateChanged | CommandExecuted
EventListener = Callable[[AssistantEvent], None]


class EventHub:
    """Fan out session events to listeners in the order they were produced.

    The hub owns the activity log so that appending an entry and delivering
    its ``ActivityLogged`` event happen under the same lock as every other
    publish. Listeners run synchronously on the producing thread; a listener
    that raises is logged and does not affect the others.
    """

    def __init__(
        self,
        *,
        activity_log: ActivityLog | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.activity_log = activity_log if activity_log is not None else ActivityLog(DEFAULT_CAPACITY)
        self.logger = logger or LOGGER
        self._lock = threading.RLock()
        self._listeners: list[EventListener] = []

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it again."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            self.unsubscribe(listener)

        return _unsubscribe

    def unsubscribe(self, listener: EventListener) -> None:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    def publish(self, event: AssistantEvent) -> None:
        with self._lock:
            self._deliver(event)

    def log_activity(self, message: str) -> ActivityEntry:
        with self._lock:
            entry = self.activity_log.append(message)
            self.logger.info("[activity] %s", message)
            self._deliver(ActivityLogged(entry.message, entry.timestamp))
        return entry

    def _deliver(self, event: AssistantEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:
                self.logger.error("[events] Listener failed for %s: %s", type(event).__name__, exc, exc_info=True)
