import threading
from unittest.mock import MagicMock, patch

import pytest
import requests

from clipkeep.links import LinkMetadataFetcher, normalize_url, parse_metadata

PAGE = """
<html><head>
  <title>Fallback Title</title>
  <meta property="og:title" content="Open Graph Title">
  <meta name="description" content="A page about things">
  <link rel="shortcut icon" href="/static/icon.png">
</head><body>hi</body></html>
"""


def make_response(status=200, text=PAGE, content_type="text/html; charset=utf-8", url="https://example.com/page"):
    response = MagicMock()
    response.status_code = status
    response.text = text
    response.headers = {"Content-Type": content_type}
    response.url = url
    return response


@pytest.fixture
def session():
    s = MagicMock()
    s.headers = {}
    s.get.return_value = make_response()
    return s


@pytest.fixture
def fetcher(session):
    f = LinkMetadataFetcher(timeout=1, session=session)
    yield f
    f.shutdown()


class TestParseMetadata:
    def test_open_graph_preferred(self):
        metadata = parse_metadata(PAGE, "https://example.com/page")
        assert metadata.title == "Open Graph Title"
        assert metadata.description == "A page about things"
        assert metadata.favicon_url == "https://example.com/static/icon.png"

    def test_title_tag_fallback_and_default_favicon(self):
        metadata = parse_metadata("<html><head><title> Plain </title></head></html>", "https://example.com/a/b")
        assert metadata.title == "Plain"
        assert metadata.description is None
        assert metadata.favicon_url == "https://example.com/favicon.ico"


class TestNormalizeUrl:
    def test_bare_host_gets_scheme(self):
        assert normalize_url("example.com/x") == "https://example.com/x"

    def test_scheme_kept(self):
        assert normalize_url("http://example.com") == "http://example.com"


class TestFetchNow:
    def test_success(self, fetcher, session):
        metadata = fetcher.fetch_now("https://example.com/page")
        assert metadata.title == "Open Graph Title"
        session.get.assert_called_once_with("https://example.com/page", timeout=1)

    def test_cached(self, fetcher, session):
        fetcher.fetch_now("https://example.com/page")
        fetcher.fetch_now("https://example.com/page")
        assert session.get.call_count == 1

    def test_non_2xx_is_no_metadata(self, fetcher, session):
        session.get.return_value = make_response(status=404)
        assert fetcher.fetch_now("https://example.com/missing") is None

    def test_timeout_is_no_metadata(self, fetcher, session):
        session.get.side_effect = requests.Timeout("slow")
        assert fetcher.fetch_now("https://example.com/slow") is None

    def test_non_html_ignored(self, fetcher, session):
        session.get.return_value = make_response(content_type="application/pdf")
        assert fetcher.fetch_now("https://example.com/doc.pdf") is None

    def test_user_agent_set(self, session):
        LinkMetadataFetcher(session=session).shutdown()
        assert "clipkeep" in session.headers["User-Agent"]


class TestFetch:
    def test_on_complete_called(self, fetcher):
        on_complete = MagicMock()
        future = fetcher.fetch("item1", "https://example.com/page", on_complete)
        metadata = future.result(timeout=2)
        on_complete.assert_called_once_with("item1", metadata)
        assert fetcher.pending() == 0

    def test_no_callback_without_metadata(self, fetcher, session):
        session.get.return_value = make_response(status=500)
        on_complete = MagicMock()
        fetcher.fetch("item1", "https://example.com/page", on_complete).result(timeout=2)
        on_complete.assert_not_called()

    def test_parse_error_logged(self, fetcher, session, caplog):
        session.get.return_value = make_response(url="https://example.com/broken")
        on_complete = MagicMock()
        with patch("clipkeep.links.parse_metadata", side_effect=RuntimeError("bad markup")):
            assert fetcher.fetch("item1", "https://example.com/broken", on_complete).result(timeout=2) is None
        on_complete.assert_not_called()
        assert fetcher.pending() == 0
        assert "Error fetching link metadata" in caplog.text

    def test_callback_error_logged(self, fetcher, caplog):
        on_complete = MagicMock(side_effect=RuntimeError("item gone"))
        metadata = fetcher.fetch("item1", "https://example.com/page", on_complete).result(timeout=2)
        assert metadata is not None
        assert "Error applying link metadata to item item1" in caplog.text

    def test_newer_fetch_supersedes_older(self, session):
        release = threading.Event()

        def slow_get(url, timeout):
            release.wait(2)
            return make_response(url=url)

        session.get.side_effect = slow_get
        fetcher = LinkMetadataFetcher(max_workers=2, session=session)
        try:
            on_complete = MagicMock()
            first = fetcher.fetch("item1", "https://example.com/old", on_complete)
            second = fetcher.fetch("item1", "https://example.com/new", on_complete)
            release.set()
            second.result(timeout=2)
            if not first.cancelled():
                first.result(timeout=2)
        finally:
            fetcher.shutdown()

        assert on_complete.call_count == 1
        assert on_complete.call_args[0][0] == "item1"
