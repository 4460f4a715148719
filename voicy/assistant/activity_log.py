"""Bounded activity log shared by the session and its observers."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime

DEFAULT_CAPACITY = 100


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class ActivityEntry:
    message: str
    timestamp: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, str]:
        return {"message": self.message, "timestamp": self.timestamp.isoformat()}


class ActivityLog:
    """Fixed-capacity FIFO of recent orchestration events.

    Thread-safe: appends and snapshots are guarded by a lock, and the oldest
    entry is evicted once the capacity is exceeded.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("Activity log capacity must be positive")
        self._capacity = capacity
        self._entries: deque[ActivityEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, message: str) -> ActivityEntry:
        entry = ActivityEntry(message)
        with self._lock:
            self._entries.append(entry)
        return entry

    def entries(self) -> list[ActivityEntry]:
        with self._lock:
            return list(self._entries)

    def messages(self) -> list[str]:
        return [entry.message for entry in self.entries()]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
