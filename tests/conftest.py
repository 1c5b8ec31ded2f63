from datetime import datetime, timedelta

import pytest

from clipkeep import clipboard
from clipkeep.clipboard import Representation
from clipkeep.history import HistoryStore
from clipkeep.models import ClipboardItem, ContentKind, SourceApp
from clipkeep.pinboards import PinboardStore
from clipkeep.undo import UndoBuffer
from clipkeep.utils import compute_hash

PNG_HEADER = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x64\x00\x00\x00\x32" + b"\x00" * 16


class FakeClipboard:
    """In-memory ClipboardSource with a change counter like NSPasteboard's."""

    def __init__(self):
        self.count = 0
        self.reps: list[Representation] = []
        self.app: SourceApp | None = None
        self.writes: list[list[Representation]] = []
        self.fail_reads = 0

    def change_count(self) -> int:
        return self.count

    def representations(self) -> list[Representation]:
        if self.fail_reads:
            self.fail_reads -= 1
            raise RuntimeError("pasteboard unavailable")
        return list(self.reps)

    def write(self, representations: list[Representation]) -> None:
        self.writes.append(list(representations))
        self.reps = list(representations)
        self.count += 1

    def frontmost_app(self) -> SourceApp | None:
        return self.app

    def copy_text(self, text: str) -> None:
        """Simulate the user copying plain text in another app."""
        self.reps = [Representation(clipboard.STRING, text)]
        self.count += 1

    def copy(self, *representations: Representation) -> None:
        self.reps = list(representations)
        self.count += 1


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@pytest.fixture
def fake_clipboard():
    return FakeClipboard()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def pinboards():
    return PinboardStore()


@pytest.fixture
def history(pinboards, clock):
    return HistoryStore(capacity=5, pinboards=pinboards, undo=UndoBuffer(now=clock), now=clock)


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "history.json"


@pytest.fixture
def make_item(clock):
    """Factory fixture to create ClipboardItem instances for testing."""

    def _make_item(
        text: str = "hello world",
        kind: ContentKind = ContentKind.PLAIN_TEXT,
        created_at: datetime | None = None,
        source_app: str | None = None,
        **kwargs,
    ) -> ClipboardItem:
        if kind == ContentKind.IMAGE and "image_data" not in kwargs:
            kwargs["image_data"] = PNG_HEADER + text.encode()
        content = kwargs.get("image_data") or text
        return ClipboardItem(
            kind=kind,
            text=text,
            content_hash=compute_hash(content),
            created_at=created_at or clock(),
            source_app=SourceApp(name=source_app) if source_app else None,
            **kwargs,
        )

    return _make_item
