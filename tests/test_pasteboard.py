from unittest.mock import MagicMock

import pytest

pytest.importorskip("AppKit")

from clipkeep import clipboard  # noqa: E402
from clipkeep.clipboard import Representation  # noqa: E402
from clipkeep.pasteboard import PasteboardSource  # noqa: E402


@pytest.fixture
def pasteboard():
    pb = MagicMock()
    pb.changeCount.return_value = 7
    return pb


class TestPasteboardSource:
    def test_change_count(self, pasteboard):
        assert PasteboardSource(pasteboard).change_count() == 7

    def test_no_types(self, pasteboard):
        pasteboard.types.return_value = None
        assert PasteboardSource(pasteboard).representations() == []

    def test_reads_string_and_markers(self, pasteboard):
        pasteboard.types.return_value = [clipboard.STRING, clipboard.CONCEALED]
        pasteboard.stringForType_.return_value = "secret"

        reps = PasteboardSource(pasteboard).representations()

        assert Representation(clipboard.STRING, "secret") in reps
        assert Representation(clipboard.CONCEALED, b"") in reps

    def test_write_text(self, pasteboard):
        PasteboardSource(pasteboard).write([Representation(clipboard.STRING, "hello")])
        pasteboard.clearContents.assert_called_once()
        pasteboard.setString_forType_.assert_called_once_with("hello", clipboard.STRING)
