import logging
import threading
from collections.abc import Callable
from datetime import datetime

from clipkeep.config import MAX_HISTORY
from clipkeep.models import ClipboardItem, LinkMetadata, Tombstone
from clipkeep.pinboards import PinboardStore
from clipkeep.undo import UndoBuffer

logger = logging.getLogger(__name__)


class HistoryStore:
    """The ordered, deduplicated, capacity-bounded clipboard history.

    Items are kept most-recently-used first. At most one item exists per dedup
    key, and the size stays at or below ``capacity`` except for items that a
    pinboard references. All mutation goes through this object; readers get
    copies.
    """

    def __init__(
        self,
        capacity: int = MAX_HISTORY,
        pinboards: PinboardStore | None = None,
        undo: UndoBuffer | None = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self._capacity = capacity
        self._pinboards = pinboards if pinboards is not None else PinboardStore()
        self._undo = undo if undo is not None else UndoBuffer(now=now)
        self._now = now
        self._items: list[ClipboardItem] = []
        self._lock = threading.RLock()
        self._listeners: list[Callable[[], None]] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def pinboards(self) -> PinboardStore:
        return self._pinboards

    @property
    def undo(self) -> UndoBuffer:
        return self._undo

    def subscribe(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    def _index_of(self, item_id: str) -> int | None:
        for i, item in enumerate(self._items):
            if item.id == item_id:
                return i
        return None

    def _index_of_key(self, key) -> int | None:
        for i, item in enumerate(self._items):
            if item.dedup_key == key:
                return i
        return None

    def ingest(self, item: ClipboardItem) -> tuple[ClipboardItem, bool]:
        """Add a captured item, refreshing an existing duplicate instead.

        Returns:
            The stored item and True if it was new, False if a duplicate was
            refreshed and moved to the front.
        """
        with self._lock:
            existing_index = self._index_of_key(item.dedup_key)
            if existing_index is not None:
                stored = self._items.pop(existing_index)
                stored.tags |= item.tags
                stored.created_at = item.created_at
                self._items.insert(0, stored)
                created = False
            else:
                stored = item.snapshot()
                self._items.insert(0, stored)
                created = True
                self._evict_locked()
            result = stored.snapshot()
        self._notify()
        return result, created

    def _evict_locked(self, keep: str | None = None) -> list[ClipboardItem]:
        if len(self._items) <= self._capacity:
            return []
        pinned = self._pinboards.pinned_ids()
        evicted = []
        i = len(self._items) - 1
        # The head is the item just captured or touched; it is never evicted.
        while len(self._items) > self._capacity and i >= 1:
            if self._items[i].id not in pinned and self._items[i].id != keep:
                evicted.append(self._items.pop(i))
            i -= 1
        if evicted:
            logger.debug("Evicted %d item(s) over capacity %d", len(evicted), self._capacity)
        return evicted

    def enforce_capacity(self) -> int:
        with self._lock:
            evicted = self._evict_locked()
        if evicted:
            self._notify()
        return len(evicted)

    def set_capacity(self, capacity: int) -> None:
        with self._lock:
            self._capacity = max(1, capacity)
        self.enforce_capacity()

    def delete(self, item_id: str) -> bool:
        with self._lock:
            index = self._index_of(item_id)
            if index is None:
                return False
            item = self._items.pop(index)
            self._undo.push(Tombstone(item=item, index=index, deleted_at=self._now()))
        self._pinboards.remove_item(item_id)
        self._notify()
        return True

    def restore(self) -> ClipboardItem | None:
        """Reinsert the most recent deletion if it has not expired."""
        tombstone = self._undo.pop()
        if tombstone is None:
            return None
        with self._lock:
            if self._index_of_key(tombstone.item.dedup_key) is not None:
                logger.debug("Skipping restore, content was captured again since deletion")
                return None
            index = min(tombstone.index, len(self._items))
            self._items.insert(index, tombstone.item)
            self._evict_locked(keep=tombstone.item.id)
            result = tombstone.item.snapshot()
        self._notify()
        return result

    def can_undo(self) -> bool:
        return len(self._undo) > 0

    def touch(self, item_id: str) -> bool:
        """Move an item to the front with a fresh timestamp."""
        with self._lock:
            index = self._index_of(item_id)
            if index is None:
                return False
            item = self._items.pop(index)
            item.created_at = self._now()
            self._items.insert(0, item)
        self._notify()
        return True

    def apply_link_metadata(self, item_id: str, metadata: LinkMetadata) -> bool:
        """Attach fetched metadata if the item still exists."""
        with self._lock:
            index = self._index_of(item_id)
            if index is None:
                logger.debug("Dropping link metadata for missing item %s", item_id)
                return False
            self._items[index].link_metadata = metadata
        self._notify()
        return True

    def get(self, item_id: str) -> ClipboardItem | None:
        with self._lock:
            index = self._index_of(item_id)
            return self._items[index].snapshot() if index is not None else None

    def items(self, limit: int | None = None) -> list[ClipboardItem]:
        with self._lock:
            selected = self._items if limit is None else self._items[:limit]
            return [item.snapshot() for item in selected]

    def ids(self) -> list[str]:
        with self._lock:
            return [item.id for item in self._items]

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
            self._undo.clear()
        self._pinboards.prune(())
        self._notify()

    def load(self, items: list[ClipboardItem]) -> None:
        """Replace the contents with previously persisted items, dropping duplicates.

        Capacity is not enforced here; call enforce_capacity() once pinboards
        are loaded so pinned items survive.
        """
        seen = set()
        loaded = []
        for item in items:
            if item.dedup_key in seen:
                continue
            seen.add(item.dedup_key)
            loaded.append(item.snapshot())
        with self._lock:
            self._items = loaded

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, item_id: str) -> bool:
        with self._lock:
            return self._index_of(item_id) is not None
