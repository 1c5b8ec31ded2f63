"""The narrow contract between the capture pipeline and the OS clipboard."""

from dataclasses import dataclass
from typing import Protocol

from clipkeep.models import SourceApp

# Uniform type identifiers, as reported by NSPasteboard.
PNG = "public.png"
TIFF = "public.tiff"
FILE_URL = "public.file-url"
URL = "public.url"
STRING = "public.utf8-plain-text"
RTF = "public.rtf"
HTML = "public.html"

# nspasteboard.org markers set by password managers and similar apps.
CONCEALED = "org.nspasteboard.ConcealedType"
TRANSIENT = "org.nspasteboard.TransientType"
AUTO_GENERATED = "org.nspasteboard.AutoGeneratedType"

IMAGE_TYPES = (PNG, TIFF)
CONFIDENTIAL_TYPES = frozenset({CONCEALED, TRANSIENT, AUTO_GENERATED})


@dataclass(frozen=True)
class Representation:
    type: str
    data: str | bytes

    @property
    def text(self) -> str | None:
        if isinstance(self.data, str):
            return self.data
        try:
            return self.data.decode("utf-8")
        except UnicodeDecodeError:
            return None


class ClipboardSource(Protocol):
    def change_count(self) -> int: ...

    def representations(self) -> list[Representation]: ...

    def write(self, representations: list[Representation]) -> None: ...

    def frontmost_app(self) -> SourceApp | None: ...


def find(representations: list[Representation], rep_type: str) -> Representation | None:
    for rep in representations:
        if rep.type == rep_type:
            return rep
    return None


def find_all(representations: list[Representation], rep_type: str) -> list[Representation]:
    return [rep for rep in representations if rep.type == rep_type]


def types_of(representations: list[Representation]) -> set[str]:
    return {rep.type for rep in representations}
