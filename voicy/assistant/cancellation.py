"""Explicit cancellation scope passed down every suspension point."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable

LOGGER = logging.getLogger(__name__)


class CancellationScope:
    """Cancellation value shared by one listening session or text command.

    ``cancel()`` may be called from any thread. It marks the scope, cancels
    every attached task on its own loop, and runs registered callbacks (for
    example to kill a child process). Coroutines observe it either through
    task cancellation or by calling :meth:`raise_if_cancelled`.
    """

    def __init__(self, name: str = "scope") -> None:
        self.name = name
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._tasks: set[asyncio.Task] = set()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def attach(self, task: asyncio.Task) -> asyncio.Task:
        """Tie a task to this scope; it is cancelled when the scope is."""
        with self._lock:
            if not self._cancelled.is_set():
                self._tasks.add(task)
                task.add_done_callback(self._discard)
                return task
        _cancel_task(task)
        return task

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` on cancellation; returns a callable that unregisters it."""
        with self._lock:
            if not self._cancelled.is_set():
                self._callbacks.append(callback)

                def _remove() -> None:
                    with self._lock:
                        if callback in self._callbacks:
                            self._callbacks.remove(callback)

                return _remove
        callback()
        return lambda: None

    def cancel(self) -> bool:
        """Cancel the scope. Returns False if it was already cancelled."""
        with self._lock:
            if self._cancelled.is_set():
                return False
            self._cancelled.set()
            tasks = list(self._tasks)
            callbacks = list(self._callbacks)
            self._tasks.clear()
            self._callbacks.clear()
        for task in tasks:
            _cancel_task(task)
        for callback in callbacks:
            try:
                callback()
            except Exception:
                LOGGER.debug("Cancellation callback failed for %s", self.name, exc_info=True)
        return True

    def raise_if_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise asyncio.CancelledError(f"{self.name} cancelled")

    async def sleep(self, delay: float) -> None:
        """Sleep that refuses to start or finish inside a cancelled scope."""
        self.raise_if_cancelled()
        await asyncio.sleep(delay)
        self.raise_if_cancelled()

    def _discard(self, task: asyncio.Task) -> None:
        with self._lock:
            self._tasks.discard(task)


def _cancel_task(task: asyncio.Task) -> None:
    if task.done():
        return
    loop = task.get_loop()
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None
    if running is loop:
        task.cancel()
    else:
        loop.call_soon_threadsafe(task.cancel)
