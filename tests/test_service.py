from unittest.mock import MagicMock

import pytest

from clipkeep import clipboard
from clipkeep.clipboard import Representation
from clipkeep.persistence import read_document
from clipkeep.service import ClipboardService


@pytest.fixture
def paste_action():
    return MagicMock()


@pytest.fixture
def service(fake_clipboard, store_path, clock, paste_action):
    svc = ClipboardService(
        fake_clipboard,
        store_path=store_path,
        capacity=5,
        paste_action=paste_action,
        clear_on_quit=False,
        now=clock,
        ignored_apps=frozenset(),
    )
    svc.start(poll=False)
    yield svc
    svc.shutdown()


def capture(service, fake_clipboard, text):
    fake_clipboard.copy_text(text)
    service.poller.poll_once()
    return service.recent()[0]


class TestHistoryCommands:
    def test_recent_and_search(self, service, fake_clipboard):
        capture(service, fake_clipboard, "alpha")
        capture(service, fake_clipboard, "beta")
        assert [i.text for i in service.recent()] == ["beta", "alpha"]
        assert [i.text for i in service.search("alp")] == ["alpha"]
        assert len(service.search("", limit=1)) == 1

    def test_copy_writes_without_recapture(self, service, fake_clipboard, clock):
        alpha = capture(service, fake_clipboard, "alpha")
        capture(service, fake_clipboard, "beta")
        clock.advance(5)

        assert service.copy(alpha.id) is True
        assert fake_clipboard.writes[-1] == [Representation(clipboard.STRING, "alpha")]
        assert service.poller.poll_once() is False
        assert service.recent()[0].id == alpha.id
        assert len(service.recent()) == 2

    def test_copy_missing(self, service):
        assert service.copy("missing") is False

    def test_delete_and_restore(self, service, fake_clipboard):
        item = capture(service, fake_clipboard, "oops")
        assert service.delete(item.id) is True
        assert service.can_undo() is True
        assert service.restore().id == item.id

    def test_clear_history(self, service, fake_clipboard):
        capture(service, fake_clipboard, "a")
        service.clear_history()
        assert service.recent() == []


class TestPinboardCommands:
    def test_pin_requires_existing_item(self, service):
        board = service.create_pinboard("Work")
        assert service.pin("missing", board.id) is False

    def test_pinboard_items(self, service, fake_clipboard):
        item = capture(service, fake_clipboard, "keep")
        board = service.create_pinboard("Work", "green")
        assert service.pin(item.id, board.id) is True
        assert [i.id for i in service.pinboard_items(board.id)] == [item.id]

    def _overflow(self, service, fake_clipboard):
        board = service.create_pinboard("Work")
        pinned = []
        for i in range(5):
            item = capture(service, fake_clipboard, f"pinned {i}")
            service.pin(item.id, board.id)
            pinned.append(item)
        capture(service, fake_clipboard, "newest")
        assert len(service.history) == 6
        return board, pinned

    def test_unpin_enforces_capacity(self, service, fake_clipboard):
        board, pinned = self._overflow(service, fake_clipboard)
        oldest = pinned[0]

        assert service.unpin(oldest.id, board.id) is True

        assert len(service.history) == 5
        assert oldest.id not in service.history

    def test_delete_pinboard_enforces_capacity(self, service, fake_clipboard):
        board, pinned = self._overflow(service, fake_clipboard)

        assert service.delete_pinboard(board.id) is True

        assert len(service.history) == 5
        assert pinned[0].id not in service.history


class TestPasteStackCommands:
    def test_collect_and_paste(self, service, fake_clipboard, paste_action):
        service.start_paste_stack()
        capture(service, fake_clipboard, "first")
        capture(service, fake_clipboard, "second")
        service.end_paste_stack()

        pasted = service.paste_next()

        assert pasted.text == "first"
        assert fake_clipboard.writes[-1] == [Representation(clipboard.STRING, "first")]
        paste_action.assert_called_once()
        assert service.poller.poll_once() is False
        assert service.paste_stack.current().text == "second"

    def test_recopied_history_item_joins_stack(self, service, fake_clipboard):
        capture(service, fake_clipboard, "older")
        capture(service, fake_clipboard, "newer")
        service.start_paste_stack()
        capture(service, fake_clipboard, "older")
        assert [i.text for i in service.paste_stack.items()] == ["older"]

    def test_remove_from_stack(self, service, fake_clipboard):
        service.start_paste_stack()
        capture(service, fake_clipboard, "first")
        assert service.remove_from_stack().text == "first"
        assert service.paste_next() is None


class TestLifecycle:
    def test_state_persisted_on_shutdown(self, fake_clipboard, store_path, clock):
        svc = ClipboardService(fake_clipboard, store_path=store_path, clear_on_quit=False, now=clock)
        svc.start(poll=False)
        item = capture(svc, fake_clipboard, "remember me")
        board = svc.create_pinboard("Work")
        svc.pin(item.id, board.id)
        svc.shutdown()

        reloaded = ClipboardService(fake_clipboard, store_path=store_path, now=clock)
        reloaded.start(poll=False)
        try:
            assert reloaded.recent()[0].text == "remember me"
            assert [i.id for i in reloaded.pinboard_items(board.id)] == [item.id]
        finally:
            reloaded.shutdown()

    def test_clear_on_quit(self, fake_clipboard, store_path, clock):
        svc = ClipboardService(fake_clipboard, store_path=store_path, clear_on_quit=True, now=clock)
        svc.start(poll=False)
        capture(svc, fake_clipboard, "temporary")
        svc.shutdown()
        assert read_document(store_path).items == []

    def test_listener_notified(self, service, fake_clipboard):
        calls = []
        service.subscribe(lambda: calls.append(1))
        capture(service, fake_clipboard, "hello")
        service.create_pinboard("Work")
        assert len(calls) == 2

    def test_stop_snippets_without_start(self, service):
        service.stop_snippets()
