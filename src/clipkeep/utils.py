import hashlib

from clipkeep.config import DATA_DIR, IMAGE_DIR


def compute_hash(*parts: str | bytes) -> str:
    """sha256 hex digest of the parts, joined by newlines."""
    digest = hashlib.sha256()
    for i, part in enumerate(parts):
        if i:
            digest.update(b"\n")
        digest.update(part.encode("utf-8") if isinstance(part, str) else part)
    return digest.hexdigest()


def truncate_text(text: str, max_len: int) -> str:
    single_line = " ".join(text.split())
    if len(single_line) <= max_len:
        return single_line
    return single_line[: max_len - 3] + "..."


def ensure_dirs() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    IMAGE_DIR.mkdir(parents=True, exist_ok=True)
