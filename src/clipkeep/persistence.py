"""Debounced JSON persistence for history, pinboards and snippets.

The whole state lives in one versioned document. Mutations reset a short
timer and only the trailing write after a quiet period reaches the disk.
Shutdown cancels the timer and writes synchronously. An unreadable or
unrecognized document is discarded in favor of an empty state.
"""

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path

from clipkeep.config import SAVE_DEBOUNCE, STORE_PATH
from clipkeep.history import HistoryStore
from clipkeep.models import ClipboardItem, Pinboard, Snippet
from clipkeep.pinboards import PinboardStore
from clipkeep.snippets import SnippetStore

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


@dataclass
class Document:
    items: list[ClipboardItem] = field(default_factory=list)
    pinboards: list[Pinboard] = field(default_factory=list)
    snippets: list[Snippet] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "version": SCHEMA_VERSION,
            "items": [item.to_dict() for item in self.items],
            "pinboards": [board.to_dict() for board in self.pinboards],
            "snippets": [snippet.to_dict() for snippet in self.snippets],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Document":
        if not isinstance(data, dict) or data.get("version") != SCHEMA_VERSION:
            raise ValueError(f"unsupported document version: {data.get('version') if isinstance(data, dict) else None!r}")
        return cls(
            items=[ClipboardItem.from_dict(d) for d in _records(data, "items")],
            pinboards=[Pinboard.from_dict(d) for d in _records(data, "pinboards")],
            snippets=[Snippet.from_dict(d) for d in _records(data, "snippets")],
        )


def _records(data: dict, key: str) -> list[dict]:
    records = data.get(key, [])
    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        raise ValueError(f"malformed {key!r} section")
    return records


def read_document(path: str | Path) -> Document:
    """Read the document at path, returning an empty one if it is missing or bad."""
    path = Path(path)
    if not path.exists():
        return Document()
    try:
        data = json.loads(path.read_bytes())
        return Document.from_dict(data)
    except (OSError, ValueError, KeyError, TypeError) as exc:
        logger.warning("Discarding unreadable history file %s: %s", path, exc)
        return Document()


def write_document(path: str | Path, document: Document) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".history-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(document.to_dict(), f, ensure_ascii=False)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class PersistenceManager:
    def __init__(
        self,
        history: HistoryStore,
        pinboards: PinboardStore,
        snippets: SnippetStore,
        path: str | Path | None = None,
        debounce: float = SAVE_DEBOUNCE,
    ):
        self._path = Path(path) if path else STORE_PATH
        self._history = history
        self._pinboards = pinboards
        self._snippets = snippets
        self._debounce = debounce
        self._timer: threading.Timer | None = None
        self._timer_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._closed = False

    @property
    def path(self) -> Path:
        return self._path

    def attach(self) -> None:
        """Subscribe to every store so each mutation schedules a save."""
        self._history.subscribe(self.schedule_save)
        self._pinboards.subscribe(self.schedule_save)
        self._snippets.subscribe(self.schedule_save)

    def load(self) -> Document:
        document = read_document(self._path)
        self._history.load(document.items)
        valid_ids = self._history.ids()
        self._pinboards.load(document.pinboards, valid_ids)
        self._history.enforce_capacity()
        self._snippets.load(document.snippets)
        logger.info(
            "Loaded %d item(s), %d pinboard(s), %d snippet(s) from %s",
            len(document.items), len(document.pinboards), len(document.snippets), self._path,
        )
        return document

    def schedule_save(self) -> None:
        with self._timer_lock:
            if self._closed:
                return
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._debounce, self._flush)
            self._timer.daemon = True
            self._timer.start()

    @property
    def pending(self) -> bool:
        with self._timer_lock:
            return self._timer is not None

    def _flush(self) -> None:
        with self._timer_lock:
            self._timer = None
        self.save()

    def snapshot(self) -> Document:
        return Document(
            items=self._history.items(),
            pinboards=self._pinboards.pinboards(),
            snippets=self._snippets.snippets(),
        )

    def save(self) -> bool:
        with self._write_lock:
            try:
                write_document(self._path, self.snapshot())
                return True
            except (OSError, TypeError, ValueError):
                logger.exception("Error saving history to %s", self._path)
                return False

    def shutdown(self) -> bool:
        """Cancel any pending save and write the final state synchronously."""
        with self._timer_lock:
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        return self.save()
