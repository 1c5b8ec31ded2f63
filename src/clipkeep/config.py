import os
from pathlib import Path

DATA_DIR = Path(os.environ.get("CLIPKEEP_DATA_DIR", Path.home() / ".local" / "share" / "clipkeep"))
STORE_PATH = DATA_DIR / "history.json"
IMAGE_DIR = DATA_DIR / "images"
LOG_PATH = DATA_DIR / "clipkeep.log"

POLL_INTERVAL = 0.5  # seconds between clipboard checks
UNDO_TIMEOUT = 30.0  # seconds a deleted item stays restorable
UNDO_DEPTH = 1  # single active undo slot
SAVE_DEBOUNCE = 1.5  # quiet period before the history file is written
LINK_FETCH_TIMEOUT = 5.0
MAX_TEXT_SIZE = 1_000_000  # 1MB text limit
MAX_IMAGE_SIZE = 10_000_000  # 10MB image limit
PREVIEW_LENGTH = 60  # characters shown in menu item
THUMBNAIL_SIZE = (32, 32)  # pixels, for menu icon display
SNIPPET_BUFFER_LENGTH = 50  # typed characters kept for trigger matching


def _parse_int(name: str, default: int, low: int, high: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(low, min(high, value))


def _parse_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _parse_ignored_apps() -> frozenset[str]:
    raw = os.environ.get("CLIPKEEP_IGNORED_APPS")
    if raw is None:
        return frozenset({"com.apple.keychainaccess", "com.apple.Passwords"})
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


MAX_HISTORY = _parse_int("CLIPKEEP_MAX_HISTORY", 100, 10, 1000)
MENU_DISPLAY_COUNT = _parse_int("CLIPKEEP_MENU_DISPLAY_COUNT", 10, 5, 50)
DETECT_LINKS = _parse_bool("CLIPKEEP_DETECT_LINKS", True)
IGNORE_CONFIDENTIAL = _parse_bool("CLIPKEEP_IGNORE_CONFIDENTIAL", True)
CLEAR_ON_QUIT = _parse_bool("CLIPKEEP_CLEAR_ON_QUIT", False)
IGNORED_APPS = _parse_ignored_apps()
