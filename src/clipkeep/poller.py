import logging
import threading
from collections.abc import Callable
from datetime import datetime

from clipkeep.classifier import classify
from clipkeep.clipboard import CONFIDENTIAL_TYPES, ClipboardSource, Representation
from clipkeep.config import DETECT_LINKS, IGNORE_CONFIDENTIAL, IGNORED_APPS, POLL_INTERVAL
from clipkeep.history import HistoryStore
from clipkeep.links import LinkMetadataFetcher
from clipkeep.models import ClipboardItem, ContentKind

logger = logging.getLogger(__name__)


class Poller:
    """Drive the capture pipeline from the clipboard's change counter.

    ``poll_once`` is cheap when nothing changed. The background loop calls it
    every ``interval`` seconds on a daemon thread. Writes made through
    ``write`` are remembered by fingerprint so the program does not capture
    its own output.
    """

    def __init__(
        self,
        source: ClipboardSource,
        history: HistoryStore,
        on_ingest: Callable[[ClipboardItem], None] | None = None,
        fetcher: LinkMetadataFetcher | None = None,
        interval: float = POLL_INTERVAL,
        detect_links: bool = DETECT_LINKS,
        ignore_confidential: bool = IGNORE_CONFIDENTIAL,
        ignored_apps: frozenset[str] = IGNORED_APPS,
        now: Callable[[], datetime] = datetime.now,
    ):
        self._source = source
        self._history = history
        self._on_ingest = on_ingest
        self._fetcher = fetcher
        self._interval = interval
        self._detect_links = detect_links
        self._ignore_confidential = ignore_confidential
        self._ignored_apps = ignored_apps
        self._now = now
        self._lock = threading.Lock()
        self._last_change_count = source.change_count()
        self._pending_fingerprint = None
        self._paused = False
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def paused(self) -> bool:
        return self._paused

    def poll_once(self) -> bool:
        """Check the clipboard once. Returns True if history changed."""
        with self._lock:
            current_count = self._source.change_count()
            if current_count == self._last_change_count:
                return False
            previous_count = self._last_change_count
            self._last_change_count = current_count

            if self._paused:
                self._pending_fingerprint = None
                return False

            try:
                representations = self._source.representations()
            except Exception:
                logger.warning("Error reading clipboard, retrying next poll", exc_info=True)
                self._last_change_count = previous_count
                return False

            # A fingerprint covers exactly one observed change, captured or not.
            pending, self._pending_fingerprint = self._pending_fingerprint, None
            item = self._capture(representations)
            if item is None:
                return False
            if pending is not None and item.dedup_key == pending:
                logger.debug("Skipping our own clipboard write")
                return False

        stored, created = self._history.ingest(item)
        if created and stored.kind == ContentKind.URL and self._detect_links and self._fetcher is not None:
            self._fetcher.fetch(stored.id, stored.text, self._history.apply_link_metadata)
        if self._on_ingest:
            self._on_ingest(stored)
        return True

    def _capture(self, representations: list[Representation]) -> ClipboardItem | None:
        if self._ignore_confidential and any(rep.type in CONFIDENTIAL_TYPES for rep in representations):
            logger.debug("Skipping confidential clipboard content")
            return None

        source_app = None
        try:
            source_app = self._source.frontmost_app()
        except Exception:
            logger.debug("Could not determine frontmost app", exc_info=True)
        if source_app is not None and source_app.bundle_id in self._ignored_apps:
            logger.debug("Skipping content from ignored app %s", source_app.bundle_id)
            return None

        try:
            return classify(representations, source_app=source_app, now=self._now())
        except Exception:
            logger.exception("Error classifying clipboard content")
            return None

    def write(self, representations: list[Representation]) -> None:
        """Put content on the clipboard without capturing it back."""
        item = classify(representations, now=self._now())
        with self._lock:
            self._pending_fingerprint = item.dedup_key if item is not None else None
            self._source.write(representations)

    def sync_change_count(self) -> None:
        with self._lock:
            self._last_change_count = self._source.change_count()

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self.sync_change_count()
        self._paused = False

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="clipkeep-poller", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=2)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self.poll_once()
            except Exception:
                logger.exception("Error polling clipboard")
