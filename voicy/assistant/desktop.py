"""Desktop integrations used by the folder and screenshot actions."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shutil
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .cancellation import CancellationScope

LOGGER = logging.getLogger(__name__)

WELL_KNOWN_FOLDERS = {
    "desktop": "Desktop",
    "documents": "Documents",
    "downloads": "Downloads",
    "pictures": "Pictures",
    "music": "Music",
    "videos": "Videos",
}


@dataclass(frozen=True)
class FolderOpenResult:
    success: bool
    error: str | None = None


@dataclass(frozen=True)
class ScreenshotResult:
    success: bool
    path: str = ""
    error: str | None = None


class FolderOpener:
    def resolve_path(self, name: str) -> Path | None:
        raise NotImplementedError

    async def open(self, path: Path, scope: CancellationScope) -> FolderOpenResult:
        raise NotImplementedError


class ScreenshotProvider:
    async def capture(self, interactive: bool, scope: CancellationScope) -> ScreenshotResult:
        raise NotImplementedError


@dataclass(frozen=True)
class ProcessOutcome:
    returncode: int
    stderr: str


async def run_process(command: Sequence[str], scope: CancellationScope) -> ProcessOutcome:
    """Run a helper process, killing it if the scope is cancelled."""
    scope.raise_if_cancelled()
    proc = await asyncio.create_subprocess_exec(
        *command,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.PIPE,
    )

    def _kill() -> None:
        if proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()

    unregister = scope.add_callback(_kill)
    try:
        _, stderr = await proc.communicate()
    except asyncio.CancelledError:
        _kill()
        raise
    finally:
        unregister()
    scope.raise_if_cancelled()
    return ProcessOutcome(proc.returncode or 0, stderr.decode("utf-8", errors="ignore").strip())


class DesktopFolderOpener(FolderOpener):
    """Resolve folders in the user's home and open them with the desktop file manager."""

    def __init__(
        self,
        search_paths: Sequence[Path] | None = None,
        *,
        home: Path | None = None,
        opener: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.home = home or Path.home()
        self.search_paths = tuple(
            search_paths
            if search_paths is not None
            else (self.home / "Desktop", self.home / "Documents", self.home / "Downloads", self.home)
        )
        self.opener = opener or ("open" if sys.platform == "darwin" else "xdg-open")
        self.logger = logger or LOGGER

    def resolve_path(self, name: str) -> Path | None:
        folder = (name or "").strip()
        if not folder:
            return None
        lowered = folder.lower()
        if lowered == "home":
            return self.home
        if lowered in WELL_KNOWN_FOLDERS:
            return self.home / WELL_KNOWN_FOLDERS[lowered]

        for location in self.search_paths:
            candidate = location / folder
            if candidate.is_dir():
                return candidate

        for location in self.search_paths:
            if not location.is_dir():
                continue
            try:
                children = sorted(child for child in location.iterdir() if child.is_dir())
            except OSError as exc:
                self.logger.debug("Unable to scan %s: %s", location, exc)
                continue
            for child in children:
                if child.name.lower() == lowered:
                    return child
        return None

    async def open(self, path: Path, scope: CancellationScope) -> FolderOpenResult:
        if shutil.which(self.opener) is None:
            return FolderOpenResult(False, f"The '{self.opener}' command is not available.")
        try:
            outcome = await run_process([self.opener, str(path)], scope)
        except OSError as exc:
            return FolderOpenResult(False, f"An error occurred while opening the folder: {exc}")
        if outcome.returncode != 0:
            detail = f" Error: {outcome.stderr}" if outcome.stderr else ""
            return FolderOpenResult(False, f"Failed to open folder.{detail}")
        return FolderOpenResult(True)


class CommandScreenshotProvider(ScreenshotProvider):
    """Capture screenshots with ``screencapture`` (macOS) or ``gnome-screenshot``."""

    def __init__(
        self,
        output_dir: Path,
        *,
        platform: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.output_dir = output_dir
        self.platform = platform or sys.platform
        self.logger = logger or LOGGER

    def build_command(self, path: Path, interactive: bool) -> list[str]:
        if self.platform == "darwin":
            return ["/usr/sbin/screencapture", *(["-i"] if interactive else []), str(path)]
        return ["gnome-screenshot", *(["-a"] if interactive else []), "-f", str(path)]

    def _target_path(self) -> Path:
        return self.output_dir / f"Screenshot_{datetime.now():%Y%m%d_%H%M%S}.png"

    async def capture(self, interactive: bool, scope: CancellationScope) -> ScreenshotResult:
        path = self._target_path()
        command = self.build_command(path, interactive)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            outcome = await run_process(command, scope)
        except OSError as exc:
            return ScreenshotResult(False, "", f"An error occurred while taking the screenshot: {exc}")
        if not path.exists():
            if interactive:
                return ScreenshotResult(True, "", "Screenshot cancelled by user.")
            detail = f" Error: {outcome.stderr}" if outcome.stderr else ""
            return ScreenshotResult(False, "", f"Failed to take screenshot.{detail}")
        if outcome.returncode != 0:
            self.logger.debug("Screenshot tool exited with %s: %s", outcome.returncode, outcome.stderr)
        return ScreenshotResult(True, str(path))
