"""Turn raw clipboard representations into a ClipboardItem.

The priority order is fixed: inline image, then file paths (a single image
file counts as an image), then a lone URL string, then text. Rich payloads
ride along with plain text; rich text without a plain rendering becomes a
RichText item.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from clipkeep import clipboard
from clipkeep.clipboard import Representation
from clipkeep.config import MAX_IMAGE_SIZE, MAX_TEXT_SIZE
from clipkeep.models import ClipboardItem, ContentKind, SourceApp
from clipkeep.tags import detect_tags
from clipkeep.thumbnails import image_size
from clipkeep.utils import compute_hash

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "bmp", "tiff", "tif", "webp", "heic", "heif"})

BARE_HOST = re.compile(
    r"^(?:[A-Za-z0-9](?:[A-Za-z0-9\-]{0,61}[A-Za-z0-9])?\.)+[A-Za-z]{2,}(?::\d{1,5})?(?:[/?#]\S*)?$"
)

_RTF_GROUPS = re.compile(r"\{\\(?:\*|fonttbl|colortbl|stylesheet|info|expandedcolortbl)[^{}]*(?:\{[^{}]*\}[^{}]*)*\}")
_RTF_PAR = re.compile(r"\\(?:par|line)\b ?")
_RTF_HEX = re.compile(r"\\'([0-9a-fA-F]{2})")
_RTF_UNICODE = re.compile(r"\\u(-?\d+)\??")
_RTF_CONTROL = re.compile(r"\\[a-zA-Z]+-?\d* ?")


def parse_url(text: str) -> str | None:
    """Return the text if it looks like a URL, with or without a scheme."""
    if not text or any(ch.isspace() for ch in text):
        return None
    parts = urlsplit(text)
    if parts.scheme and parts.netloc:
        try:
            if parts.hostname:
                return text
        except ValueError:
            return None
        return None
    if BARE_HOST.match(text):
        return text
    return None


def rtf_to_text(rtf: str) -> str:
    text = _RTF_GROUPS.sub("", rtf)
    text = _RTF_PAR.sub("\n", text)
    text = _RTF_HEX.sub(lambda m: bytes([int(m.group(1), 16)]).decode("cp1252", errors="replace"), text)
    text = _RTF_UNICODE.sub(lambda m: chr(int(m.group(1)) % 0x10000), text)
    text = _RTF_CONTROL.sub("", text)
    return text.replace("\\{", "{").replace("\\}", "}").replace("{", "").replace("}", "").replace("\\\\", "\\")


def html_to_text(html: str) -> str:
    return BeautifulSoup(html, "html.parser").get_text("\n")


def _as_bytes(rep: Representation | None) -> bytes | None:
    if rep is None:
        return None
    return rep.data.encode("utf-8") if isinstance(rep.data, str) else rep.data


def _image_text(image_data: bytes) -> str:
    width, height = image_size(image_data)
    return f"[Image: {width}x{height}]" if width > 0 else "[Image]"


def _read_image_file(path: str) -> bytes | None:
    p = Path(path)
    try:
        if p.stat().st_size > MAX_IMAGE_SIZE:
            logger.warning("Image file too large, keeping as file: %s", path)
            return None
        return p.read_bytes()
    except OSError:
        logger.warning("Could not read image file %s", path)
        return None


def _classify_image(representations, source_app, now) -> ClipboardItem | None:
    rep = clipboard.find(representations, clipboard.PNG) or clipboard.find(representations, clipboard.TIFF)
    image_data = _as_bytes(rep)
    if not image_data:
        return None
    if len(image_data) > MAX_IMAGE_SIZE:
        logger.warning("Image too large (%d bytes), skipping", len(image_data))
        return None
    return ClipboardItem(
        kind=ContentKind.IMAGE,
        text=_image_text(image_data),
        content_hash=compute_hash(image_data),
        created_at=now,
        image_data=image_data,
        source_app=source_app,
    )


def _classify_files(representations, source_app, now) -> ClipboardItem | None:
    paths = [rep.text for rep in clipboard.find_all(representations, clipboard.FILE_URL) if rep.text]
    if not paths:
        return None

    if len(paths) == 1 and Path(paths[0]).suffix.lower().lstrip(".") in IMAGE_EXTENSIONS:
        image_data = _read_image_file(paths[0])
        if image_data:
            return ClipboardItem(
                kind=ContentKind.IMAGE,
                text=Path(paths[0]).name,
                content_hash=compute_hash(image_data),
                created_at=now,
                image_data=image_data,
                file_paths=paths,
                source_app=source_app,
            )

    return ClipboardItem(
        kind=ContentKind.FILE_LIST,
        text=", ".join(Path(p).name for p in paths),
        content_hash=compute_hash(*sorted(paths)),
        created_at=now,
        file_paths=paths,
        source_app=source_app,
    )


def _classify_url(representations, source_app, now) -> ClipboardItem | None:
    rep = clipboard.find(representations, clipboard.URL)
    if rep is None:
        strings = clipboard.find_all(representations, clipboard.STRING)
        if len(strings) != 1:
            return None
        rep = strings[0]
    text = (rep.text or "").strip()
    if parse_url(text) is None:
        return None
    return ClipboardItem(
        kind=ContentKind.URL,
        text=text,
        content_hash=compute_hash(text),
        created_at=now,
        source_app=source_app,
        tags=detect_tags(text),
    )


def _classify_text(representations, source_app, now) -> ClipboardItem | None:
    rtf_data = _as_bytes(clipboard.find(representations, clipboard.RTF))
    html_data = _as_bytes(clipboard.find(representations, clipboard.HTML))
    string_rep = clipboard.find(representations, clipboard.STRING)

    if string_rep is not None:
        kind = ContentKind.PLAIN_TEXT
        raw = string_rep.text or ""
    elif rtf_data or html_data:
        kind = ContentKind.RICH_TEXT
        if rtf_data:
            raw = rtf_to_text(rtf_data.decode("utf-8", errors="replace"))
        else:
            raw = html_to_text(html_data.decode("utf-8", errors="replace"))
    else:
        return None

    text = raw.strip()
    if not text:
        return None
    if len(text.encode("utf-8")) > MAX_TEXT_SIZE:
        logger.warning("Text too large (%d chars), skipping", len(text))
        return None

    return ClipboardItem(
        kind=kind,
        text=text,
        content_hash=compute_hash(text),
        created_at=now,
        rtf_data=rtf_data,
        html_data=html_data,
        source_app=source_app,
        tags=detect_tags(text),
    )


def classify(
    representations: list[Representation],
    source_app: SourceApp | None = None,
    now: datetime | None = None,
) -> ClipboardItem | None:
    """Classify one clipboard change.

    Args:
        representations: Everything the clipboard offered for the change.
        source_app: The app that was frontmost when the change was seen.
        now: Capture time, defaults to the current time.

    Returns:
        A new ClipboardItem, or None when nothing usable was offered.
    """
    if not representations:
        return None
    now = now or datetime.now()
    types = clipboard.types_of(representations)

    if types & set(clipboard.IMAGE_TYPES):
        item = _classify_image(representations, source_app, now)
        if item:
            return item
    if clipboard.FILE_URL in types:
        item = _classify_files(representations, source_app, now)
        if item:
            return item
    if clipboard.URL in types or clipboard.STRING in types:
        item = _classify_url(representations, source_app, now)
        if item:
            return item
    return _classify_text(representations, source_app, now)


def to_representations(item: ClipboardItem, plain_text: bool = False) -> list[Representation]:
    """Build the representations that put an item back on the clipboard."""
    if plain_text and item.kind != ContentKind.IMAGE:
        text = "\n".join(item.file_paths) if item.kind == ContentKind.FILE_LIST and item.file_paths else item.text
        return [Representation(clipboard.STRING, text)]

    if item.kind == ContentKind.IMAGE and item.image_data:
        is_png = item.image_data[:8] == b"\x89PNG\r\n\x1a\n"
        return [Representation(clipboard.PNG if is_png else clipboard.TIFF, item.image_data)]
    if item.kind == ContentKind.FILE_LIST and item.file_paths:
        return [Representation(clipboard.FILE_URL, path) for path in item.file_paths]
    if item.kind == ContentKind.URL:
        return [Representation(clipboard.URL, item.text), Representation(clipboard.STRING, item.text)]

    reps = []
    if item.rtf_data:
        reps.append(Representation(clipboard.RTF, item.rtf_data))
    if item.html_data:
        reps.append(Representation(clipboard.HTML, item.html_data))
    if item.kind == ContentKind.PLAIN_TEXT or not reps:
        reps.append(Representation(clipboard.STRING, item.text))
    return reps
