"""Tiered free-text ranking over clipboard items.

Every candidate is scored by its best tier over a handful of fields:
exact match, then prefix, then substring, then subsequence. Ties within a
tier go to the most recent item. This runs on every keystroke against the
whole history, so it is a plain linear scan with no index.
"""

from clipkeep.models import ClipboardItem

EXACT = 1
PREFIX = 2
SUBSTRING = 3
SUBSEQUENCE = 4


def is_subsequence(query: str, text: str) -> bool:
    it = iter(text)
    return all(ch in it for ch in query)


def match_tier(query: str, text: str) -> int | None:
    """Return the tier of a lowercase query against text, or None."""
    if not text:
        return None
    text = text.lower()
    if text == query:
        return EXACT
    if text.startswith(query):
        return PREFIX
    if query in text:
        return SUBSTRING
    if is_subsequence(query, text):
        return SUBSEQUENCE
    return None


def searchable_fields(item: ClipboardItem) -> list[str]:
    fields = [item.text, item.kind_label]
    if item.source_app is not None:
        fields.append(item.source_app.name)
    fields.extend(item.file_names)
    if item.link_metadata is not None and item.link_metadata.title:
        fields.append(item.link_metadata.title)
    return fields


def best_tier(query: str, item: ClipboardItem) -> int | None:
    best = None
    for field in searchable_fields(item):
        tier = match_tier(query, field)
        if tier is not None and (best is None or tier < best):
            best = tier
            if best == EXACT:
                break
    return best


def rank(query: str, candidates: list[ClipboardItem]) -> list[ClipboardItem]:
    """Filter and order candidates by match tier, then recency.

    An empty or whitespace-only query returns the candidates unchanged.
    """
    query = query.strip().lower()
    if not query:
        return list(candidates)

    scored = []
    for item in candidates:
        tier = best_tier(query, item)
        if tier is not None:
            scored.append((tier, item))

    scored.sort(key=lambda pair: (pair[0], -pair[1].created_at.timestamp()))
    return [item for _, item in scored]
