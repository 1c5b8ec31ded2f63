import threading
from collections import deque
from collections.abc import Callable
from datetime import datetime, timedelta

from clipkeep.config import UNDO_DEPTH, UNDO_TIMEOUT
from clipkeep.models import Tombstone


class UndoBuffer:
    """Short-lived holding area for deleted items.

    Entries expire ``timeout`` seconds after deletion and are purged lazily
    before every read. With the default depth of one, only the most recent
    deletion can be undone.
    """

    def __init__(
        self,
        timeout: float = UNDO_TIMEOUT,
        depth: int = UNDO_DEPTH,
        now: Callable[[], datetime] = datetime.now,
    ):
        self._timeout = timedelta(seconds=timeout)
        self._entries: deque[Tombstone] = deque(maxlen=max(1, depth))
        self._now = now
        self._lock = threading.Lock()

    def push(self, tombstone: Tombstone) -> None:
        with self._lock:
            self._entries.append(tombstone)

    def pop(self) -> Tombstone | None:
        with self._lock:
            self._expire_locked()
            if not self._entries:
                return None
            return self._entries.pop()

    def peek(self) -> Tombstone | None:
        with self._lock:
            self._expire_locked()
            return self._entries[-1] if self._entries else None

    def expire(self) -> None:
        with self._lock:
            self._expire_locked()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            self._expire_locked()
            return len(self._entries)

    def _expire_locked(self) -> None:
        cutoff = self._now() - self._timeout
        while self._entries and self._entries[0].deleted_at < cutoff:
            self._entries.popleft()
