from typing import Protocol


class ClipboardError(Exception):
    """Raised when the system clipboard cannot be read or written."""


class Clipboard(Protocol):
    def read_text(self) -> str | None: ...

    def write_text(self, text: str) -> None: ...

    def read_image(self) -> bytes | None: ...

    def write_image(self, path: str) -> None: ...


class PasteboardClipboard:
    """The macOS general pasteboard."""

    def __init__(self):
        from AppKit import NSPasteboard

        self._pasteboard = NSPasteboard.generalPasteboard()

    def read_text(self) -> str | None:
        from AppKit import NSPasteboardTypeString

        text = self._pasteboard.stringForType_(NSPasteboardTypeString)
        return str(text) if text is not None else None

    def write_text(self, text: str) -> None:
        from AppKit import NSPasteboardTypeString

        try:
            self._pasteboard.clearContents()
            written = self._pasteboard.setString_forType_(text, NSPasteboardTypeString)
        except Exception as exc:
            raise ClipboardError(f"Cannot write text to pasteboard: {exc}") from exc
        if not written:
            raise ClipboardError("Pasteboard rejected text")

    def read_image(self) -> bytes | None:
        """Return PNG data, or None when the pasteboard holds no PNG image."""
        from AppKit import NSPasteboardTypePNG

        data = self._pasteboard.dataForType_(NSPasteboardTypePNG)
        return bytes(data) if data is not None else None

    def write_image(self, path: str) -> None:
        from AppKit import NSPasteboardTypePNG
        from Foundation import NSData

        img_data = NSData.dataWithContentsOfFile_(path)
        if img_data is None:
            raise ClipboardError(f"Cannot read image file {path}")
        try:
            self._pasteboard.clearContents()
            written = self._pasteboard.setData_forType_(img_data, NSPasteboardTypePNG)
        except Exception as exc:
            raise ClipboardError(f"Cannot write image to pasteboard: {exc}") from exc
        if not written:
            raise ClipboardError("Pasteboard rejected image")
