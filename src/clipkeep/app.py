import logging
from dataclasses import dataclass
from typing import Callable

import rumps

from clipkeep import __version__
from clipkeep.config import MENU_DISPLAY_COUNT, THUMBNAIL_SIZE
from clipkeep.models import ClipboardItem, ContentKind
from clipkeep.service import ClipboardService
from clipkeep.thumbnails import thumbnail_for
from clipkeep.utils import ensure_dirs

logger = logging.getLogger(__name__)

ENTRY_KEY_PREFIX = "clipkeep_entry_"
PINBOARD_EMOJI = {
    "red": "🔴", "yellow": "🟡", "green": "🟢", "blue": "🔵",
    "purple": "🟣", "orange": "🟠", "pink": "🩷", "cyan": "🩵",
}


@dataclass
class MenuItemSpec:
    """Specification for a menu item, separating logic from rumps rendering."""

    title: str
    callback: Callable | None = None
    icon: str | None = None
    dimensions: tuple[int, int] | None = None
    template: bool | None = None
    entry_id: str | None = None
    is_submenu: bool = False
    children: list["MenuItemSpec | None"] | None = None


class ClipkeepApp(rumps.App):
    def __init__(self):
        super().__init__("Clipkeep", title="📋", quit_button=None)
        self._init_app()

    def _init_app(self) -> None:
        """Initialize app components. Separated for testability."""
        ensure_dirs()
        from clipkeep.links import LinkMetadataFetcher
        from clipkeep.pasteboard import PasteboardSource

        self._service = ClipboardService(PasteboardSource(), fetcher=LinkMetadataFetcher())
        self._entry_ids: dict[str, str] = {}
        self._dirty = False
        self._service.subscribe(self._mark_dirty)
        self._service.start()
        self._service.start_snippets()
        self._build_menu()

    def _mark_dirty(self) -> None:
        # Called from worker threads; the menu is rebuilt on the main thread.
        self._dirty = True

    @rumps.timer(0.5)
    def _refresh_if_dirty(self, _sender) -> None:
        if self._dirty:
            self._dirty = False
            self._build_menu()

    def _build_menu(self) -> None:
        """Build the menu from computed specifications."""
        self.menu.clear()
        self._entry_ids.clear()
        specs = self._compute_menu_specs()
        self._render_menu_specs(specs)

    def _compute_menu_specs(self) -> list[MenuItemSpec | None]:
        """Compute menu item specifications. Pure logic, no rumps dependency."""
        specs: list[MenuItemSpec | None] = [
            MenuItemSpec(f"Clipkeep v{__version__} - Clipboard History"),
            None,  # separator
            MenuItemSpec("Search...", callback=self._on_search),
            None,  # separator
        ]

        for board in self._service.pinboards.pinboards():
            items = self._service.pinboard_items(board.id)
            children: list[MenuItemSpec | None] = [self._compute_entry_spec(i) for i in items]
            if not children:
                children.append(MenuItemSpec("(Empty)"))
            emoji = PINBOARD_EMOJI.get(board.color.value, "📌")
            specs.append(MenuItemSpec(f"{emoji} {board.name}", is_submenu=True, children=children))
        specs.append(MenuItemSpec("New Pinboard...", callback=self._on_new_pinboard))
        specs.append(None)

        entries = self._service.recent(limit=MENU_DISPLAY_COUNT)
        if not entries:
            specs.append(MenuItemSpec("(No clipboard history)"))
        else:
            for entry in entries:
                specs.append(self._compute_entry_spec(entry))

        specs.append(None)
        specs.append(self._compute_paste_stack_spec())

        undo_title = "Undo Delete" if self._service.can_undo() else "Undo Delete (nothing to undo)"
        specs.extend([
            None,
            MenuItemSpec(undo_title, callback=self._on_undo),
            MenuItemSpec("Clear History", callback=self._on_clear),
            None,  # separator
            MenuItemSpec("Quit Clipkeep", callback=self._on_quit),
        ])

        return specs

    def _compute_paste_stack_spec(self) -> MenuItemSpec:
        stack = self._service.paste_stack
        if not stack.is_active and not len(stack):
            return MenuItemSpec("Start Paste Stack", callback=self._on_start_stack)

        current = stack.current()
        children: list[MenuItemSpec | None] = [
            MenuItemSpec(f"{len(stack)} item(s) collected"),
            MenuItemSpec(f"Next: {current.preview}" if current else "Next: (empty)"),
            None,
            MenuItemSpec("Paste Next", callback=self._on_paste_next),
            MenuItemSpec("Skip Next", callback=self._on_skip_next),
            MenuItemSpec("End Paste Stack", callback=self._on_end_stack),
        ]
        return MenuItemSpec("📚 Paste Stack", is_submenu=True, children=children)

    def _compute_entry_spec(self, entry: ClipboardItem) -> MenuItemSpec:
        """Compute menu item spec for a clipboard entry."""
        key = f"{ENTRY_KEY_PREFIX}{entry.id}"
        self._entry_ids[key] = entry.id

        spec = MenuItemSpec(
            title=entry.preview,
            callback=self._on_entry_click,
            entry_id=entry.id,
        )

        if entry.kind == ContentKind.IMAGE:
            thumb_path = thumbnail_for(entry, THUMBNAIL_SIZE)
            if thumb_path:
                spec.icon = thumb_path
                spec.dimensions = THUMBNAIL_SIZE
                spec.template = False

        return spec

    def _render_menu_specs(self, specs: list[MenuItemSpec | None]) -> None:
        """Render menu item specifications to actual rumps MenuItems."""
        items = []
        for spec in specs:
            items.append(self._render_single_spec(spec))
        self.menu = items

    def _render_single_spec(self, spec: MenuItemSpec | None) -> rumps.MenuItem | None:
        """Render a single menu item specification."""
        if spec is None:
            return None

        if spec.is_submenu and spec.children:
            submenu = rumps.MenuItem(spec.title)
            for child in spec.children:
                child_item = self._render_single_spec(child)
                if child_item is None:
                    submenu.add(None)
                else:
                    submenu.add(child_item)
            return submenu

        kwargs = {"callback": spec.callback}
        if spec.icon:
            kwargs["icon"] = spec.icon
        if spec.dimensions:
            kwargs["dimensions"] = spec.dimensions
        if spec.template is not None:
            kwargs["template"] = spec.template

        item = rumps.MenuItem(spec.title, **kwargs)

        if spec.entry_id is not None:
            item._id = f"{ENTRY_KEY_PREFIX}{spec.entry_id}"

        return item

    def _on_entry_click(self, sender) -> None:
        entry_id = self._entry_ids.get(getattr(sender, "_id", ""))
        if entry_id is None:
            return

        # Option-click deletes the entry (undo is available for 30 seconds)
        try:
            from AppKit import NSAlternateKeyMask, NSEvent

            if NSEvent.modifierFlags() & NSAlternateKeyMask:
                if self._service.delete(entry_id):
                    rumps.notification("Clipkeep", "", "Deleted. Use Undo Delete to restore.", sound=False)
                return
        except ImportError:
            pass

        if self._service.copy(entry_id):
            rumps.notification("Clipkeep", "", "Copied to clipboard", sound=False)

    def _on_search(self, _sender) -> None:
        response = rumps.Window(
            message="Search clipboard history:",
            title="Clipkeep Search",
            default_text="",
            ok="Search",
            cancel="Cancel",
            dimensions=(300, 24),
        ).run()

        if response.clicked and response.text.strip():
            query = response.text.strip()
            results = self._service.search(query, limit=MENU_DISPLAY_COUNT)

            if not results:
                rumps.alert("Clipkeep Search", f'No results for "{query}"')
                return

            self._entry_ids.clear()
            specs = self._compute_search_results_specs(query, results)
            self.menu.clear()
            self._render_menu_specs(specs)

    def _compute_search_results_specs(self, query: str, results: list[ClipboardItem]) -> list[MenuItemSpec | None]:
        """Compute menu specs for search results."""
        specs: list[MenuItemSpec | None] = [
            MenuItemSpec(f'Search: "{query}" ({len(results)} results)'),
            None,
            MenuItemSpec("Show All", callback=lambda _: self._build_menu()),
            None,
        ]

        for entry in results:
            specs.append(self._compute_entry_spec(entry))

        specs.extend([
            None,
            MenuItemSpec("Quit Clipkeep", callback=self._on_quit),
        ])

        return specs

    def _on_new_pinboard(self, _sender) -> None:
        response = rumps.Window(
            message="Pinboard name:",
            title="New Pinboard",
            default_text="Untitled",
            ok="Create",
            cancel="Cancel",
            dimensions=(300, 24),
        ).run()
        if response.clicked and response.text.strip():
            self._service.create_pinboard(response.text.strip())

    def _on_start_stack(self, _sender) -> None:
        self._service.start_paste_stack()
        rumps.notification("Clipkeep", "", "Paste stack started: copy items to collect them", sound=False)
        self._build_menu()

    def _on_paste_next(self, _sender) -> None:
        self._service.paste_next()
        self._build_menu()

    def _on_skip_next(self, _sender) -> None:
        self._service.remove_from_stack()
        self._build_menu()

    def _on_end_stack(self, _sender) -> None:
        self._service.end_paste_stack()
        self._service.paste_stack.clear()
        self._build_menu()

    def _on_undo(self, _sender) -> None:
        if self._service.restore() is None:
            rumps.notification("Clipkeep", "", "Nothing to undo", sound=False)

    def _on_clear(self, _sender) -> None:
        if rumps.alert("Clipkeep", "Clear all clipboard history?", ok="Clear", cancel="Cancel"):
            self._service.clear_history()

    def _on_quit(self, _sender) -> None:
        self._service.shutdown()
        rumps.quit_application()
