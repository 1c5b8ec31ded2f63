import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from clipkeep.classifier import to_representations
from clipkeep.clipboard import ClipboardSource
from clipkeep.config import CLEAR_ON_QUIT, MAX_HISTORY, STORE_PATH
from clipkeep.history import HistoryStore
from clipkeep.links import LinkMetadataFetcher
from clipkeep.models import ClipboardItem, Pinboard, PinboardColor
from clipkeep.paste_stack import PasteStack, send_paste_keystroke
from clipkeep.persistence import PersistenceManager
from clipkeep.pinboards import PinboardStore
from clipkeep.poller import Poller
from clipkeep.search import rank
from clipkeep.snippets import KeyboardWatcher, PynputTypist, SnippetExpander, SnippetStore, Typist
from clipkeep.undo import UndoBuffer

logger = logging.getLogger(__name__)


class ClipboardService:
    """Own the stores and wire the capture pipeline together.

    This is the command surface used by the menu-bar app and the CLI. Each
    store is created here and passed explicitly to its consumers.
    """

    def __init__(
        self,
        source: ClipboardSource,
        store_path: str | Path | None = None,
        capacity: int = MAX_HISTORY,
        fetcher: LinkMetadataFetcher | None = None,
        typist: Typist | None = None,
        paste_action: Callable[[], None] = send_paste_keystroke,
        clear_on_quit: bool = CLEAR_ON_QUIT,
        now: Callable[[], datetime] = datetime.now,
        **poller_options,
    ):
        self.pinboards = PinboardStore()
        self.undo = UndoBuffer(now=now)
        self.history = HistoryStore(capacity=capacity, pinboards=self.pinboards, undo=self.undo, now=now)
        self.snippets = SnippetStore()
        self.persistence = PersistenceManager(
            self.history, self.pinboards, self.snippets, path=store_path or STORE_PATH
        )
        self.fetcher = fetcher
        self.poller = Poller(
            source, self.history, on_ingest=self._on_ingest, fetcher=fetcher, now=now, **poller_options
        )
        self.paste_stack = PasteStack(self.poller.write, paste_action=paste_action)
        self._typist = typist
        self._watcher: KeyboardWatcher | None = None
        self._clear_on_quit = clear_on_quit

    def subscribe(self, listener: Callable[[], None]) -> None:
        """Be told about any change to history or pinboards."""
        self.history.subscribe(listener)
        self.pinboards.subscribe(listener)

    def _on_ingest(self, item: ClipboardItem) -> None:
        self.paste_stack.capture(item)

    def start(self, poll: bool = True) -> None:
        self.persistence.load()
        self.persistence.attach()
        if poll:
            self.poller.start()
        logger.info("Clipboard service started with %d item(s)", len(self.history))

    def shutdown(self) -> None:
        self.stop_snippets()
        self.poller.stop()
        if self.fetcher is not None:
            self.fetcher.shutdown()
        if self._clear_on_quit:
            self.history.clear()
        self.paste_stack.clear()
        self.persistence.shutdown()
        logger.info("Clipboard service stopped")

    # History

    def recent(self, limit: int | None = None) -> list[ClipboardItem]:
        return self.history.items(limit)

    def search(self, query: str, limit: int | None = None) -> list[ClipboardItem]:
        results = rank(query, self.history.items())
        return results if limit is None else results[:limit]

    def copy(self, item_id: str, plain_text: bool = False) -> bool:
        item = self.history.get(item_id)
        if item is None:
            return False
        self.poller.write(to_representations(item, plain_text=plain_text))
        self.history.touch(item_id)
        return True

    def delete(self, item_id: str) -> bool:
        return self.history.delete(item_id)

    def restore(self) -> ClipboardItem | None:
        return self.history.restore()

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def clear_history(self) -> None:
        self.history.clear()

    # Pinboards

    def create_pinboard(self, name: str = "Untitled", color: PinboardColor | str = PinboardColor.RED) -> Pinboard:
        return self.pinboards.create(name, color)

    def delete_pinboard(self, pinboard_id: str) -> bool:
        deleted = self.pinboards.delete(pinboard_id)
        if deleted:
            self.history.enforce_capacity()
        return deleted

    def pin(self, item_id: str, pinboard_id: str) -> bool:
        if item_id not in self.history:
            return False
        return self.pinboards.pin(item_id, pinboard_id)

    def unpin(self, item_id: str, pinboard_id: str) -> bool:
        unpinned = self.pinboards.unpin(item_id, pinboard_id)
        if unpinned:
            self.history.enforce_capacity()
        return unpinned

    def pinboard_items(self, pinboard_id: str) -> list[ClipboardItem]:
        return self.pinboards.items_for(pinboard_id, self.history)

    # Paste stack

    def start_paste_stack(self) -> None:
        self.paste_stack.start_session()

    def end_paste_stack(self) -> None:
        self.paste_stack.end_session()

    def paste_next(self) -> ClipboardItem | None:
        return self.paste_stack.paste_current()

    def remove_from_stack(self) -> ClipboardItem | None:
        return self.paste_stack.remove_current()

    # Snippets

    def start_snippets(self) -> None:
        if self._watcher is not None:
            return
        if self._typist is None:
            self._typist = PynputTypist()
        self._watcher = KeyboardWatcher(SnippetExpander(self.snippets, self._typist))
        self._watcher.start()

    def stop_snippets(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
