"""Tests for app.py functionality.

ClipkeepApp inherits from rumps.App, which needs macOS GUI components, so
the menu logic is exercised on an instance built without running __init__.
"""

from unittest.mock import MagicMock, patch

import pytest

rumps = pytest.importorskip("rumps")

from clipkeep.app import ENTRY_KEY_PREFIX, ClipkeepApp, MenuItemSpec  # noqa: E402
from clipkeep.service import ClipboardService  # noqa: E402


@pytest.fixture
def service(fake_clipboard, store_path, clock):
    svc = ClipboardService(fake_clipboard, store_path=store_path, paste_action=MagicMock(), now=clock)
    svc.start(poll=False)
    yield svc
    svc.shutdown()


@pytest.fixture
def app(service):
    instance = ClipkeepApp.__new__(ClipkeepApp)
    instance._service = service
    instance._entry_ids = {}
    instance._dirty = False
    return instance


def capture(service, fake_clipboard, text):
    fake_clipboard.copy_text(text)
    service.poller.poll_once()
    return service.recent()[0]


def titles(specs):
    return [spec.title if spec else None for spec in specs]


class TestComputeMenuSpecs:
    def test_empty_history(self, app):
        specs = app._compute_menu_specs()
        assert "(No clipboard history)" in titles(specs)
        assert "Start Paste Stack" in titles(specs)
        assert "Undo Delete (nothing to undo)" in titles(specs)

    def test_entries_listed_most_recent_first(self, app, service, fake_clipboard):
        capture(service, fake_clipboard, "first")
        capture(service, fake_clipboard, "second")
        specs = [s for s in app._compute_menu_specs() if s and s.entry_id]
        assert [s.title for s in specs] == ["second", "first"]

    def test_entry_ids_mapping(self, app, service, fake_clipboard):
        item = capture(service, fake_clipboard, "hello")
        spec = app._compute_entry_spec(service.history.get(item.id))
        assert app._entry_ids[f"{ENTRY_KEY_PREFIX}{item.id}"] == item.id
        assert spec.callback == app._on_entry_click

    def test_pinboard_submenu(self, app, service, fake_clipboard):
        item = capture(service, fake_clipboard, "pinned text")
        board = service.create_pinboard("Work", "blue")
        service.pin(item.id, board.id)

        submenu = next(s for s in app._compute_menu_specs() if s and s.is_submenu and "Work" in s.title)

        assert submenu.title == "🔵 Work"
        assert [c.title for c in submenu.children] == ["pinned text"]

    def test_paste_stack_submenu_when_active(self, app, service, fake_clipboard):
        service.start_paste_stack()
        capture(service, fake_clipboard, "stacked")
        stack_spec = app._compute_paste_stack_spec()
        assert stack_spec.is_submenu
        assert "Next: stacked" in titles(stack_spec.children)

    def test_undo_available_after_delete(self, app, service, fake_clipboard):
        item = capture(service, fake_clipboard, "oops")
        service.delete(item.id)
        assert "Undo Delete" in titles(app._compute_menu_specs())

    def test_search_results_specs(self, app, service, fake_clipboard):
        capture(service, fake_clipboard, "needle")
        capture(service, fake_clipboard, "haystack")
        specs = app._compute_search_results_specs("needle", service.search("needle"))
        assert specs[0].title == 'Search: "needle" (1 results)'
        assert [s.title for s in specs if s and s.entry_id] == ["needle"]


class TestRender:
    def test_separator(self, app):
        assert app._render_single_spec(None) is None

    def test_entry_item_keeps_id(self, app):
        item = app._render_single_spec(MenuItemSpec("hello", callback=lambda _: None, entry_id="abc"))
        assert item._id == f"{ENTRY_KEY_PREFIX}abc"


class TestCallbacks:
    def test_click_copies(self, app, service, fake_clipboard):
        first = capture(service, fake_clipboard, "first")
        capture(service, fake_clipboard, "second")
        app._compute_entry_spec(service.history.get(first.id))
        sender = MagicMock()
        sender._id = f"{ENTRY_KEY_PREFIX}{first.id}"

        with patch("AppKit.NSEvent") as mock_event, patch("clipkeep.app.rumps.notification"):
            mock_event.modifierFlags.return_value = 0
            app._on_entry_click(sender)

        assert fake_clipboard.reps[0].data == "first"
        assert service.recent()[0].id == first.id

    def test_unknown_sender_ignored(self, app, fake_clipboard):
        sender = MagicMock(spec=[])
        app._on_entry_click(sender)
        assert fake_clipboard.writes == []

    def test_undo_without_deletion_notifies(self, app):
        with patch("clipkeep.app.rumps.notification") as mock_notify:
            app._on_undo(None)
        mock_notify.assert_called_once()

    def test_clear_confirmed(self, app, service, fake_clipboard):
        capture(service, fake_clipboard, "gone soon")
        with patch("clipkeep.app.rumps.alert", return_value=1):
            app._on_clear(None)
        assert service.recent() == []

    def test_clear_cancelled(self, app, service, fake_clipboard):
        capture(service, fake_clipboard, "stays")
        with patch("clipkeep.app.rumps.alert", return_value=0):
            app._on_clear(None)
        assert len(service.recent()) == 1

    def test_dirty_flag_triggers_rebuild(self, app):
        app._build_menu = MagicMock()
        app._mark_dirty()
        app._refresh_if_dirty(None)
        app._refresh_if_dirty(None)
        app._build_menu.assert_called_once()
