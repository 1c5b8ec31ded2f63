import logging
import sys
import threading
from collections.abc import Callable

from clipkeep.classifier import to_representations
from clipkeep.clipboard import Representation
from clipkeep.models import ClipboardItem

logger = logging.getLogger(__name__)


def send_paste_keystroke() -> None:
    """Press the platform paste shortcut in the focused application."""
    from pynput.keyboard import Controller, Key

    controller = Controller()
    modifier = Key.cmd if sys.platform == "darwin" else Key.ctrl
    with controller.pressed(modifier):
        controller.press("v")
        controller.release("v")


class PasteStack:
    """Session-only queue of item snapshots with a paste cursor.

    The stack owns copies of the items it holds, so deleting or evicting the
    history entry later does not affect it.
    """

    def __init__(
        self,
        writer: Callable[[list[Representation]], None],
        paste_action: Callable[[], None] = send_paste_keystroke,
    ):
        self._writer = writer
        self._paste_action = paste_action
        self._items: list[ClipboardItem] = []
        self._cursor = 0
        self._active = False
        self._lock = threading.RLock()

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def cursor(self) -> int:
        return self._cursor

    def start_session(self) -> None:
        """Start capturing: clear the stack and collect newly copied items."""
        with self._lock:
            self._items.clear()
            self._cursor = 0
            self._active = True
        logger.info("Paste stack session started")

    def end_session(self) -> None:
        with self._lock:
            self._active = False

    def capture(self, item: ClipboardItem) -> None:
        """Append a captured item while a session is active, refreshed items included."""
        if not self._active:
            return
        with self._lock:
            if any(existing.dedup_key == item.dedup_key for existing in self._items):
                return
            self._items.append(item.snapshot())

    def push(self, item: ClipboardItem) -> None:
        with self._lock:
            self._items.append(item.snapshot())

    def current(self) -> ClipboardItem | None:
        with self._lock:
            if not self._items:
                return None
            return self._items[self._cursor].snapshot()

    def items(self) -> list[ClipboardItem]:
        with self._lock:
            return [item.snapshot() for item in self._items]

    def paste_current(self) -> ClipboardItem | None:
        """Write the cursor item to the clipboard, paste it, then advance."""
        with self._lock:
            if not self._items:
                return None
            item = self._items[self._cursor]
            self._writer(to_representations(item))
            try:
                self._paste_action()
            except Exception:
                logger.exception("Error sending paste keystroke")
            if self._cursor < len(self._items) - 1:
                self._cursor += 1
            return item.snapshot()

    def remove_current(self) -> ClipboardItem | None:
        with self._lock:
            if not self._items:
                return None
            removed = self._items.pop(self._cursor)
            if self._cursor >= len(self._items):
                self._cursor = max(0, len(self._items) - 1)
            return removed

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
            self._cursor = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
