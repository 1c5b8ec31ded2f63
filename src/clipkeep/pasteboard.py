import logging

from AppKit import NSFilenamesPboardType, NSPasteboard, NSWorkspace
from Foundation import NSURL, NSData

from clipkeep import clipboard
from clipkeep.clipboard import Representation
from clipkeep.models import SourceApp

logger = logging.getLogger(__name__)

TEXT_TYPES = (clipboard.STRING, clipboard.URL)
DATA_TYPES = (clipboard.PNG, clipboard.TIFF, clipboard.RTF, clipboard.HTML)


class PasteboardSource:
    """ClipboardSource backed by the general NSPasteboard."""

    def __init__(self, pasteboard=None):
        self._pasteboard = pasteboard or NSPasteboard.generalPasteboard()

    def change_count(self) -> int:
        return int(self._pasteboard.changeCount())

    def representations(self) -> list[Representation]:
        types = self._pasteboard.types()
        if types is None:
            return []
        types = set(types)

        reps = []
        if NSFilenamesPboardType in types:
            filenames = self._pasteboard.propertyListForType_(NSFilenamesPboardType) or []
            reps.extend(Representation(clipboard.FILE_URL, str(name)) for name in filenames)

        for rep_type in TEXT_TYPES:
            if rep_type in types:
                value = self._pasteboard.stringForType_(rep_type)
                if value:
                    reps.append(Representation(rep_type, str(value)))

        for rep_type in DATA_TYPES:
            if rep_type in types:
                data = self._pasteboard.dataForType_(rep_type)
                if data is not None:
                    reps.append(Representation(rep_type, bytes(data)))

        for marker in clipboard.CONFIDENTIAL_TYPES:
            if marker in types:
                reps.append(Representation(marker, b""))
        return reps

    def write(self, representations: list[Representation]) -> None:
        pb = self._pasteboard
        pb.clearContents()

        file_urls = [NSURL.fileURLWithPath_(rep.data) for rep in representations if rep.type == clipboard.FILE_URL]
        if file_urls:
            pb.writeObjects_(file_urls)

        for rep in representations:
            if rep.type == clipboard.FILE_URL:
                continue
            if isinstance(rep.data, str):
                pb.setString_forType_(rep.data, rep.type)
            else:
                ns_data = NSData.dataWithBytes_length_(rep.data, len(rep.data))
                if ns_data:
                    pb.setData_forType_(ns_data, rep.type)

    def frontmost_app(self) -> SourceApp | None:
        app = NSWorkspace.sharedWorkspace().frontmostApplication()
        if app is None:
            return None
        bundle_id = app.bundleIdentifier()
        return SourceApp(name=str(app.localizedName() or "Unknown"), bundle_id=str(bundle_id) if bundle_id else None)
