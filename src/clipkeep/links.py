import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from urllib.parse import urljoin, urlsplit

import requests
from bs4 import BeautifulSoup

from clipkeep import __version__
from clipkeep.config import LINK_FETCH_TIMEOUT
from clipkeep.models import LinkMetadata

logger = logging.getLogger(__name__)

USER_AGENT = f"Mozilla/5.0 (compatible; clipkeep/{__version__})"
MAX_CACHE_ENTRIES = 256


def normalize_url(url: str) -> str:
    """Add a scheme to bare host URLs such as ``example.com/page``."""
    return url if urlsplit(url).scheme else f"https://{url}"


def _meta_content(soup: BeautifulSoup, *keys: str) -> str | None:
    for key in keys:
        tag = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
        if tag and tag.get("content", "").strip():
            return tag["content"].strip()
    return None


def parse_metadata(html: str, page_url: str) -> LinkMetadata:
    """Extract title, description and favicon from an HTML page."""
    soup = BeautifulSoup(html, "html.parser")

    title = _meta_content(soup, "og:title", "twitter:title")
    if title is None and soup.title and soup.title.string:
        title = soup.title.string.strip() or None

    description = _meta_content(soup, "og:description", "description", "twitter:description")

    favicon = None
    for link in soup.find_all("link", href=True):
        rel = link.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        if "icon" in (r.lower() for r in rel):
            favicon = urljoin(page_url, link["href"])
            break
    if favicon is None:
        favicon = urljoin(page_url, "/favicon.ico")

    return LinkMetadata(title=title, description=description, favicon_url=favicon, fetched_at=datetime.now())


class LinkMetadataFetcher:
    """Fetch link previews in the background.

    Completion never touches an item directly; ``on_complete`` receives the
    item id and is expected to drop the result if the item is gone.
    """

    def __init__(self, timeout: float = LINK_FETCH_TIMEOUT, max_workers: int = 4, session: requests.Session | None = None):
        self._timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="clipkeep-link")
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", USER_AGENT)
        self._futures: dict[str, Future] = {}
        self._cache: dict[str, LinkMetadata] = {}
        self._lock = threading.Lock()

    def fetch_now(self, url: str) -> LinkMetadata | None:
        url = normalize_url(url)
        with self._lock:
            cached = self._cache.get(url)
        if cached is not None:
            return cached

        try:
            response = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.info("Link metadata fetch failed for %s: %s", url, exc)
            return None
        if not 200 <= response.status_code < 300:
            logger.info("Link metadata fetch for %s returned %d", url, response.status_code)
            return None
        if "html" not in response.headers.get("Content-Type", "text/html"):
            return None

        metadata = parse_metadata(response.text, response.url or url)
        with self._lock:
            if len(self._cache) >= MAX_CACHE_ENTRIES:
                self._cache.pop(next(iter(self._cache)))
            self._cache[url] = metadata
        return metadata

    def fetch(self, item_id: str, url: str, on_complete: Callable[[str, LinkMetadata], object]) -> Future:
        def run() -> LinkMetadata | None:
            metadata = None
            try:
                metadata = self.fetch_now(url)
            except Exception:
                logger.exception("Error fetching link metadata for %s", url)
            with self._lock:
                current = self._futures.get(item_id)
                if current is future:
                    del self._futures[item_id]
                else:
                    return metadata
            if metadata is not None:
                try:
                    on_complete(item_id, metadata)
                except Exception:
                    logger.exception("Error applying link metadata to item %s", item_id)
            return metadata

        with self._lock:
            previous = self._futures.get(item_id)
            if previous is not None:
                previous.cancel()
            future = self._executor.submit(run)
            self._futures[item_id] = future
        return future

    def pending(self) -> int:
        with self._lock:
            return len(self._futures)

    def shutdown(self) -> None:
        with self._lock:
            for future in self._futures.values():
                future.cancel()
            self._futures.clear()
        self._executor.shutdown(wait=False)
