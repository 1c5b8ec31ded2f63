"""Image sizes and menu thumbnails for captured images.

Image items carry their bytes inline (PNG or TIFF, whichever the source app
put on the pasteboard). AppKit loads images by path, so the bytes are cached
under IMAGE_DIR keyed by content hash before a thumbnail is drawn.
"""

import logging
import struct
from pathlib import Path

from clipkeep.config import IMAGE_DIR, THUMBNAIL_SIZE
from clipkeep.models import ClipboardItem

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
TIFF_SIGNATURES = (b"II*\x00", b"MM\x00*")

_TIFF_WIDTH = 256
_TIFF_LENGTH = 257
_TIFF_SHORT = 3


def image_format(data: bytes) -> str | None:
    if data[:8] == PNG_SIGNATURE:
        return "png"
    if data[:4] in TIFF_SIGNATURES:
        return "tiff"
    return None


def image_size(data: bytes) -> tuple[int, int]:
    """Return (width, height) read from the image header, or (0, 0) if unknown."""
    fmt = image_format(data)
    if fmt == "png" and len(data) >= 24:
        return struct.unpack(">II", data[16:24])
    if fmt == "tiff":
        return _tiff_size(data)
    return (0, 0)


def _tiff_size(data: bytes) -> tuple[int, int]:
    # Only the first image file directory is consulted.
    order = "<" if data[:2] == b"II" else ">"
    dims = {}
    try:
        (ifd,) = struct.unpack_from(order + "I", data, 4)
        (count,) = struct.unpack_from(order + "H", data, ifd)
        for i in range(count):
            entry = ifd + 2 + i * 12
            tag, value_type = struct.unpack_from(order + "HH", data, entry)
            if tag in (_TIFF_WIDTH, _TIFF_LENGTH):
                fmt = "H" if value_type == _TIFF_SHORT else "I"
                (dims[tag],) = struct.unpack_from(order + fmt, data, entry + 8)
    except struct.error:
        return (0, 0)
    return (dims.get(_TIFF_WIDTH, 0), dims.get(_TIFF_LENGTH, 0))


def cache_image(item: ClipboardItem) -> Path | None:
    """Write an image item's bytes to IMAGE_DIR once and return the path."""
    if not item.image_data:
        return None
    path = IMAGE_DIR / f"{item.content_hash[:12]}.{image_format(item.image_data) or 'tiff'}"
    if path.exists():
        return path
    try:
        IMAGE_DIR.mkdir(parents=True, exist_ok=True)
        path.write_bytes(item.image_data)
    except OSError:
        logger.warning("Could not cache image for %s", item.id, exc_info=True)
        return None
    return path


def thumbnail_for(item: ClipboardItem, size: tuple[int, int] = THUMBNAIL_SIZE) -> str | None:
    """Path to a menu-sized PNG thumbnail of an image item, drawing it if needed."""
    image_path = cache_image(item)
    if image_path is None:
        return None
    thumb_path = image_path.with_name(f"{image_path.stem}_thumb.png")
    if thumb_path.exists() or render_thumbnail(str(image_path), str(thumb_path), size):
        return str(thumb_path)
    return None


def render_thumbnail(image_path: str, thumb_path: str, size: tuple[int, int]) -> bool:
    """Scale the image at image_path into a PNG at thumb_path using NSImage."""
    try:
        from AppKit import NSBitmapImageRep, NSGraphicsContext, NSImage, NSPNGFileType
    except ImportError:
        logger.debug("AppKit unavailable, no thumbnail for %s", image_path)
        return False

    original = NSImage.alloc().initWithContentsOfFile_(image_path)
    if not original:
        return False

    resized = NSImage.alloc().initWithSize_(size)
    resized.lockFocus()
    try:
        NSGraphicsContext.currentContext().setImageInterpolation_(3)  # high
        original.drawInRect_(((0, 0), size))
    finally:
        resized.unlockFocus()

    tiff_data = resized.TIFFRepresentation()
    bitmap = NSBitmapImageRep.imageRepWithData_(tiff_data) if tiff_data else None
    png_data = bitmap.representationUsingType_properties_(NSPNGFileType, None) if bitmap else None
    if not png_data:
        logger.debug("Could not encode thumbnail for %s", image_path)
        return False
    return bool(png_data.writeToFile_atomically_(thumb_path, True))
