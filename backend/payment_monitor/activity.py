from __future__ import annotations
import logging, threading
from collections import deque
from datetime import datetime, timezone

log = logging.getLogger("payment_monitor")

class ActivityLog:
    """Bounded in-memory activity log; oldest entries are evicted first."""

    def __init__(self, capacity: int = 100):
        self.capacity = capacity
        self._entries: deque[str] = deque(maxlen=capacity)
        self._total = 0
        self._lock = threading.Lock()

    def add(self, message: str, level: int = logging.INFO) -> str:
        ts = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        entry = f"[{ts}] {message}"
        with self._lock:
            self._entries.append(entry)
            self._total += 1
        log.log(level, message)
        return entry

    def error(self, message: str) -> str:
        return self.add(message, logging.WARNING)

    def recent(self, limit: int = 50) -> list[str]:
        with self._lock:
            items = list(self._entries)
        return items[-limit:] if limit > 0 else []

    def last(self) -> str | None:
        with self._lock:
            return self._entries[-1] if self._entries else None

    @property
    def total(self) -> int:
        return self._total

    def __len__(self) -> int:
        return len(self._entries)
