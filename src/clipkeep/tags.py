"""Semantic tag detection for textual clipboard content."""

import json
import re

from clipkeep.models import ContentTag

HEX_COLOR = re.compile(r"#(?:[0-9A-Fa-f]{6}|[0-9A-Fa-f]{3})\b")
_NUM = r"([+-]?\d{1,3}(?:\.\d+)?%?)"
_ALPHA = r"(?:\s*[,/]\s*([\d.]+%?))?"
RGB_COLOR = re.compile(rf"rgba?\(\s*{_NUM}\s*,\s*{_NUM}\s*,\s*{_NUM}{_ALPHA}\s*\)", re.IGNORECASE)
HSL_COLOR = re.compile(rf"hsla?\(\s*([+-]?\d{{1,3}}(?:\.\d+)?)(?:deg)?\s*,\s*{_NUM}\s*,\s*{_NUM}{_ALPHA}\s*\)", re.IGNORECASE)

EMAIL = re.compile(r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9\-]+(?:\.[A-Za-z0-9\-]+)*\.[A-Za-z]{2,}")

# A run of digits and phone separators; the digit count is validated separately.
PHONE = re.compile(r"(?<![\w#])\+?\(?\d{1,4}\)?(?:[-\s./()]*\d){6,14}(?!\w)")
PHONE_MIN_DIGITS = 7
PHONE_MAX_DIGITS = 15

CODE_KEYWORD = re.compile(
    r"^\s*(?:def|class|function|func|fn|import|from|return|const|let|var|struct|enum|interface"
    r"|public|private|protected|async|package|#include|if|for|while|switch)\b"
)
CODE_LINE_END = re.compile(r"[;{}]\s*$")

STREET_SUFFIXES = (
    "Street", "St", "Avenue", "Ave", "Boulevard", "Blvd", "Drive", "Dr", "Road", "Rd",
    "Lane", "Ln", "Court", "Ct", "Way", "Place", "Pl", "Highway", "Hwy", "Circle", "Cir",
    "Terrace", "Ter", "Parkway", "Pkwy", "Square", "Sq",
)
ADDRESS = re.compile(
    r"^\d{1,6}[A-Za-z]?\s+(?:[\w.'\-]+\s+){0,5}?(?:" + "|".join(STREET_SUFFIXES) + r")\b\.?",
    re.IGNORECASE,
)


def _in_range(token: str, high: float, percent_ok: bool = True) -> bool:
    if token.endswith("%"):
        if not percent_ok:
            return False
        high, token = 100.0, token[:-1]
    try:
        value = float(token)
    except ValueError:
        return False
    return 0.0 <= value <= high


def _alpha_ok(token: str | None) -> bool:
    if token is None:
        return True
    if token.endswith("%"):
        return _in_range(token, 100.0)
    return _in_range(token, 1.0, percent_ok=False)


def has_color(text: str) -> bool:
    if HEX_COLOR.search(text):
        return True
    for match in RGB_COLOR.finditer(text):
        r, g, b, alpha = match.groups()
        if all(_in_range(c, 255.0) for c in (r, g, b)) and _alpha_ok(alpha):
            return True
    for match in HSL_COLOR.finditer(text):
        hue, sat, light, alpha = match.groups()
        if (
            _in_range(hue, 360.0, percent_ok=False)
            and sat.endswith("%") and _in_range(sat, 100.0)
            and light.endswith("%") and _in_range(light, 100.0)
            and _alpha_ok(alpha)
        ):
            return True
    return False


def has_email(text: str) -> bool:
    return EMAIL.search(text) is not None


def has_phone(text: str) -> bool:
    for match in PHONE.finditer(text):
        digits = sum(ch.isdigit() for ch in match.group(0))
        if PHONE_MIN_DIGITS <= digits <= PHONE_MAX_DIGITS:
            return True
    return False


def is_json(text: str) -> bool:
    if not text or text[0] not in "{[":
        return False
    try:
        value = json.loads(text)
    except ValueError:
        return False
    return isinstance(value, (dict, list))


def looks_like_code(text: str) -> bool:
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        return False
    if not any(line[0] in " \t" for line in lines[1:]):
        return False
    if "{" in text and "}" in text:
        return True
    if "=>" in text or "->" in text:
        return True
    return any(CODE_KEYWORD.match(line) or CODE_LINE_END.search(line) for line in lines)


def has_address(text: str) -> bool:
    return ADDRESS.match(text) is not None


def detect_tags(text: str) -> set[ContentTag]:
    """Detect semantic tags in text.

    Rules are independent, so one text can carry several tags.

    Args:
        text: The normalized text of a clipboard item.

    Returns:
        The set of detected ContentTag values, empty when nothing matches.
    """
    trimmed = text.strip()
    if not trimmed:
        return set()

    tags: set[ContentTag] = set()
    if has_color(trimmed):
        tags.add(ContentTag.COLOR)
    if has_email(trimmed):
        tags.add(ContentTag.EMAIL)
    if has_phone(trimmed):
        tags.add(ContentTag.PHONE)
    if is_json(trimmed):
        tags.add(ContentTag.JSON)
    if looks_like_code(text):
        tags.add(ContentTag.CODE)
    if has_address(trimmed):
        tags.add(ContentTag.ADDRESS)
    return tags
