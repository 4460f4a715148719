"""Command handlers and the registry that dispatches intents to them."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from .cancellation import CancellationScope
from .desktop import FolderOpener, ScreenshotProvider
from .models import FOLDER_NAME, GET_TIME, OPEN_FOLDER, TAKE_SCREENSHOT, CommandResult, IntentResult

LOGGER = logging.getLogger("voicy-assistant")


class CommandHandler:
    """Executes one intent. Expected failures come back as ``CommandResult.fail``."""

    intent_name: str = ""

    async def execute(self, intent: IntentResult, scope: CancellationScope) -> CommandResult:
        raise NotImplementedError


class CommandRegistry:
    """Map intent names to handlers, built once at startup.

    When two handlers claim the same intent name the later one replaces the
    earlier one; the replacement is logged.
    """

    def __init__(self, handlers: Iterable[CommandHandler], logger: logging.Logger | None = None) -> None:
        self.logger = logger or LOGGER
        self._handlers: dict[str, CommandHandler] = {}
        for handler in handlers:
            name = handler.intent_name
            if not name:
                raise ValueError(f"{type(handler).__name__} does not declare an intent name")
            previous = self._handlers.get(name)
            if previous is not None:
                self.logger.warning(
                    "Handler %s replaces %s for intent %s",
                    type(handler).__name__,
                    type(previous).__name__,
                    name,
                )
            self._handlers[name] = handler

    @property
    def intent_names(self) -> list[str]:
        return sorted(self._handlers)

    def handler_for(self, intent_name: str) -> CommandHandler | None:
        return self._handlers.get(intent_name)

    async def dispatch(
        self,
        intent: IntentResult,
        scope: CancellationScope,
    ) -> tuple[bool, CommandResult | None]:
        handler = self._handlers.get(intent.name)
        if handler is None:
            return False, None
        result = await handler.execute(intent, scope)
        return True, result


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _day_period(hour: int) -> str:
    if hour < 12:
        return "in the morning"
    if hour < 18:
        return "in the afternoon"
    return "in the evening"


def format_time_for_speech(moment: datetime) -> str:
    """Phrase a clock time the way a person would say it."""
    hour12 = moment.hour % 12 or 12
    period = _day_period(moment.hour)
    if moment.minute == 0:
        return f"It's {hour12} o'clock {period}."
    if moment.minute == 15:
        return f"It's quarter past {hour12} {period}."
    if moment.minute == 30:
        return f"It's half past {hour12} {period}."
    if moment.minute == 45:
        next_hour = (moment.hour + 1) % 24
        return f"It's quarter to {next_hour % 12 or 12} {_day_period(next_hour)}."
    return f"It's {hour12}:{moment.minute:02d} {period}."


class GetTimeCommandHandler(CommandHandler):
    intent_name = GET_TIME

    async def execute(self, intent: IntentResult, scope: CancellationScope) -> CommandResult:
        return CommandResult.ok(format_time_for_speech(_local_now()))


class OpenFolderCommandHandler(CommandHandler):
    intent_name = OPEN_FOLDER

    def __init__(self, folder_opener: FolderOpener) -> None:
        self.folder_opener = folder_opener

    async def execute(self, intent: IntentResult, scope: CancellationScope) -> CommandResult:
        folder_name = (intent.parameters.get(FOLDER_NAME) or "").strip()
        if not folder_name:
            return CommandResult.fail("No folder name specified.")
        path = self.folder_opener.resolve_path(folder_name)
        if path is None:
            return CommandResult.fail(f"Couldn't find folder named '{folder_name}'.")
        outcome = await self.folder_opener.open(path, scope)
        if not outcome.success:
            return CommandResult.fail(outcome.error or f"Failed to open folder '{folder_name}'.")
        return CommandResult.ok(f"Opened folder {folder_name}.")


class TakeScreenshotCommandHandler(CommandHandler):
    intent_name = TAKE_SCREENSHOT

    def __init__(self, screenshot_provider: ScreenshotProvider, *, interactive: bool = True) -> None:
        self.screenshot_provider = screenshot_provider
        self.interactive = interactive

    async def execute(self, intent: IntentResult, scope: CancellationScope) -> CommandResult:
        outcome = await self.screenshot_provider.capture(self.interactive, scope)
        if not outcome.success:
            return CommandResult.fail(outcome.error or "Failed to take screenshot.")
        if not outcome.path:
            return CommandResult.ok(outcome.error or "Screenshot cancelled.")
        return CommandResult.ok(f"Screenshot taken and saved to {Path(outcome.path).parent}.")
