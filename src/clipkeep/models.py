import base64
import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import PurePosixPath

from clipkeep.config import PREVIEW_LENGTH
from clipkeep.utils import truncate_text


def new_id() -> str:
    return uuid.uuid4().hex


class ContentKind(str, Enum):
    PLAIN_TEXT = "text"
    RICH_TEXT = "rich_text"
    IMAGE = "image"
    FILE_LIST = "file"
    URL = "url"

    @property
    def label(self) -> str:
        return _KIND_LABELS[self]


_KIND_LABELS = {
    ContentKind.PLAIN_TEXT: "Text",
    ContentKind.RICH_TEXT: "Rich Text",
    ContentKind.IMAGE: "Image",
    ContentKind.FILE_LIST: "File",
    ContentKind.URL: "Link",
}


class ContentTag(str, Enum):
    COLOR = "color"
    EMAIL = "email"
    PHONE = "phone"
    CODE = "code"
    JSON = "json"
    ADDRESS = "address"


class PinboardColor(str, Enum):
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"
    BLUE = "blue"
    PURPLE = "purple"
    ORANGE = "orange"
    PINK = "pink"
    CYAN = "cyan"


def _encode_bytes(data: bytes | None) -> str | None:
    return base64.b64encode(data).decode("ascii") if data is not None else None


def _decode_bytes(data: str | None) -> bytes | None:
    return base64.b64decode(data) if data is not None else None


@dataclass
class SourceApp:
    name: str
    bundle_id: str | None = None

    def to_dict(self) -> dict:
        return {"name": self.name, "bundle_id": self.bundle_id}

    @classmethod
    def from_dict(cls, data: dict) -> "SourceApp":
        return cls(name=data["name"], bundle_id=data.get("bundle_id"))


@dataclass
class LinkMetadata:
    title: str | None = None
    description: str | None = None
    favicon_url: str | None = None
    fetched_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "favicon_url": self.favicon_url,
            "fetched_at": self.fetched_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LinkMetadata":
        return cls(
            title=data.get("title"),
            description=data.get("description"),
            favicon_url=data.get("favicon_url"),
            fetched_at=datetime.fromisoformat(data["fetched_at"]),
        )


@dataclass
class ClipboardItem:
    """A captured clipboard entry.

    ``text`` is the normalized primary text used for search and, for textual
    kinds, for deduplication. ``content_hash`` is computed once at capture and
    together with ``kind`` forms the dedup key.
    """

    kind: ContentKind
    text: str
    content_hash: str
    created_at: datetime
    id: str = field(default_factory=new_id)
    rtf_data: bytes | None = None
    html_data: bytes | None = None
    image_data: bytes | None = None
    file_paths: list[str] | None = None
    link_metadata: LinkMetadata | None = None
    source_app: SourceApp | None = None
    tags: set[ContentTag] = field(default_factory=set)

    @property
    def dedup_key(self) -> tuple[ContentKind, str]:
        return (self.kind, self.content_hash)

    @property
    def kind_label(self) -> str:
        return self.kind.label

    @property
    def file_names(self) -> list[str]:
        return [PurePosixPath(p).name for p in self.file_paths or []]

    @property
    def preview(self) -> str:
        if self.kind == ContentKind.FILE_LIST:
            names = self.file_names
            if len(names) == 1:
                return truncate_text(names[0], PREVIEW_LENGTH)
            return truncate_text(f"{len(names)} files: {names[0]}, ...", PREVIEW_LENGTH)
        if self.kind == ContentKind.URL and self.link_metadata and self.link_metadata.title:
            return truncate_text(self.link_metadata.title, PREVIEW_LENGTH)
        return truncate_text(self.text, PREVIEW_LENGTH)

    def snapshot(self) -> "ClipboardItem":
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "text": self.text,
            "content_hash": self.content_hash,
            "created_at": self.created_at.isoformat(),
            "rtf_data": _encode_bytes(self.rtf_data),
            "html_data": _encode_bytes(self.html_data),
            "image_data": _encode_bytes(self.image_data),
            "file_paths": list(self.file_paths) if self.file_paths is not None else None,
            "link_metadata": self.link_metadata.to_dict() if self.link_metadata else None,
            "source_app": self.source_app.to_dict() if self.source_app else None,
            "tags": sorted(tag.value for tag in self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ClipboardItem":
        link_metadata = data.get("link_metadata")
        source_app = data.get("source_app")
        file_paths = data.get("file_paths")
        return cls(
            id=data["id"],
            kind=ContentKind(data["kind"]),
            text=data["text"],
            content_hash=data["content_hash"],
            created_at=datetime.fromisoformat(data["created_at"]),
            rtf_data=_decode_bytes(data.get("rtf_data")),
            html_data=_decode_bytes(data.get("html_data")),
            image_data=_decode_bytes(data.get("image_data")),
            file_paths=list(file_paths) if file_paths is not None else None,
            link_metadata=LinkMetadata.from_dict(link_metadata) if link_metadata else None,
            source_app=SourceApp.from_dict(source_app) if source_app else None,
            tags={ContentTag(tag) for tag in data.get("tags", [])},
        )


@dataclass
class Pinboard:
    name: str
    color: PinboardColor = PinboardColor.RED
    id: str = field(default_factory=new_id)
    item_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "color": self.color.value, "item_ids": list(self.item_ids)}

    @classmethod
    def from_dict(cls, data: dict) -> "Pinboard":
        return cls(
            id=data["id"],
            name=data["name"],
            color=PinboardColor(data.get("color", PinboardColor.RED.value)),
            item_ids=list(data.get("item_ids", [])),
        )


@dataclass
class Snippet:
    name: str
    trigger: str
    content: str
    enabled: bool = True
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "trigger": self.trigger,
            "content": self.content,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Snippet":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            trigger=data["trigger"],
            content=data["content"],
            enabled=bool(data.get("enabled", True)),
        )


@dataclass
class Tombstone:
    item: ClipboardItem
    index: int
    deleted_at: datetime
