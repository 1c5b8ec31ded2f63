import copy
import logging
import threading
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from clipkeep.models import ClipboardItem, Pinboard, PinboardColor

if TYPE_CHECKING:
    from clipkeep.history import HistoryStore

logger = logging.getLogger(__name__)


class PinboardStore:
    """Named collections of history item ids.

    Boards hold references only. Membership in any board is what exempts the
    referenced history entry from eviction.
    """

    def __init__(self):
        self._boards: list[Pinboard] = []
        self._lock = threading.RLock()
        self._listeners: list[Callable[[], None]] = []

    def subscribe(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    def _find(self, pinboard_id: str) -> Pinboard | None:
        for board in self._boards:
            if board.id == pinboard_id:
                return board
        return None

    def create(self, name: str = "Untitled", color: PinboardColor | str = PinboardColor.RED) -> Pinboard:
        board = Pinboard(name=name, color=PinboardColor(color))
        with self._lock:
            self._boards.append(board)
        self._notify()
        return copy.deepcopy(board)

    def update(self, pinboard_id: str, name: str | None = None, color: PinboardColor | str | None = None) -> bool:
        with self._lock:
            board = self._find(pinboard_id)
            if board is None:
                return False
            if name is not None:
                board.name = name
            if color is not None:
                board.color = PinboardColor(color)
        self._notify()
        return True

    def delete(self, pinboard_id: str) -> bool:
        with self._lock:
            board = self._find(pinboard_id)
            if board is None:
                return False
            self._boards.remove(board)
        self._notify()
        return True

    def get(self, pinboard_id: str) -> Pinboard | None:
        with self._lock:
            board = self._find(pinboard_id)
            return copy.deepcopy(board) if board else None

    def pinboards(self) -> list[Pinboard]:
        with self._lock:
            return copy.deepcopy(self._boards)

    def pin(self, item_id: str, pinboard_id: str) -> bool:
        with self._lock:
            board = self._find(pinboard_id)
            if board is None or item_id in board.item_ids:
                return False
            board.item_ids.append(item_id)
        self._notify()
        return True

    def unpin(self, item_id: str, pinboard_id: str) -> bool:
        with self._lock:
            board = self._find(pinboard_id)
            if board is None or item_id not in board.item_ids:
                return False
            board.item_ids.remove(item_id)
        self._notify()
        return True

    def remove_item(self, item_id: str) -> bool:
        """Drop an item from every board. Returns True if any board held it."""
        removed = False
        with self._lock:
            for board in self._boards:
                if item_id in board.item_ids:
                    board.item_ids.remove(item_id)
                    removed = True
        if removed:
            self._notify()
        return removed

    def is_pinned(self, item_id: str) -> bool:
        with self._lock:
            return any(item_id in board.item_ids for board in self._boards)

    def pinned_ids(self) -> set[str]:
        with self._lock:
            return {item_id for board in self._boards for item_id in board.item_ids}

    def pinned_count(self) -> int:
        return len(self.pinned_ids())

    def items_for(self, pinboard_id: str, history: "HistoryStore") -> list[ClipboardItem]:
        board = self.get(pinboard_id)
        if board is None:
            return []
        items = []
        for item_id in board.item_ids:
            item = history.get(item_id)
            if item is not None:
                items.append(item)
        return items

    def clear_items(self) -> None:
        with self._lock:
            for board in self._boards:
                board.item_ids.clear()
        self._notify()

    def prune(self, valid_ids: Iterable[str]) -> int:
        """Drop references to ids that are no longer in history."""
        valid = set(valid_ids)
        dropped = 0
        with self._lock:
            for board in self._boards:
                kept = [item_id for item_id in board.item_ids if item_id in valid]
                dropped += len(board.item_ids) - len(kept)
                board.item_ids = kept
        if dropped:
            logger.info("Dropped %d dangling pin reference(s)", dropped)
            self._notify()
        return dropped

    def load(self, boards: list[Pinboard], valid_ids: Iterable[str]) -> None:
        valid = set(valid_ids)
        with self._lock:
            self._boards = copy.deepcopy(boards)
            for board in self._boards:
                board.item_ids = [item_id for item_id in board.item_ids if item_id in valid]
