import sys
from unittest.mock import MagicMock, patch

import pytest

from klip.clipboard import ClipboardError, PasteboardClipboard


@pytest.fixture
def appkit():
    fake_appkit = MagicMock()
    fake_appkit.NSPasteboardTypeString = "public.utf8-plain-text"
    fake_appkit.NSPasteboardTypePNG = "public.png"
    fake_foundation = MagicMock()
    with patch.dict(sys.modules, {"AppKit": fake_appkit, "Foundation": fake_foundation}):
        yield fake_appkit, fake_foundation


@pytest.fixture
def pasteboard(appkit):
    fake_appkit, _ = appkit
    return fake_appkit.NSPasteboard.generalPasteboard.return_value


class TestReadText:
    def test_returns_string(self, appkit, pasteboard):
        pasteboard.stringForType_.return_value = "hello"
        assert PasteboardClipboard().read_text() == "hello"
        pasteboard.stringForType_.assert_called_once_with("public.utf8-plain-text")

    def test_no_text(self, appkit, pasteboard):
        pasteboard.stringForType_.return_value = None
        assert PasteboardClipboard().read_text() is None


class TestWriteText:
    def test_writes_string(self, appkit, pasteboard):
        pasteboard.setString_forType_.return_value = True
        PasteboardClipboard().write_text("copy")
        pasteboard.clearContents.assert_called_once()
        pasteboard.setString_forType_.assert_called_once_with("copy", "public.utf8-plain-text")

    def test_rejected(self, appkit, pasteboard):
        pasteboard.setString_forType_.return_value = False
        with pytest.raises(ClipboardError):
            PasteboardClipboard().write_text("copy")

    def test_pasteboard_exception_wrapped(self, appkit, pasteboard):
        pasteboard.clearContents.side_effect = RuntimeError("pasteboard server died")
        with pytest.raises(ClipboardError, match="pasteboard server died"):
            PasteboardClipboard().write_text("copy")


class TestImages:
    def test_read_png(self, appkit, pasteboard):
        pasteboard.dataForType_.return_value = b"\x89PNG"
        assert PasteboardClipboard().read_image() == b"\x89PNG"

    def test_read_no_image(self, appkit, pasteboard):
        pasteboard.dataForType_.return_value = None
        assert PasteboardClipboard().read_image() is None

    def test_write_image(self, appkit, pasteboard):
        _, fake_foundation = appkit
        data = object()
        fake_foundation.NSData.dataWithContentsOfFile_.return_value = data
        pasteboard.setData_forType_.return_value = True

        PasteboardClipboard().write_image("/tmp/clip.png")

        fake_foundation.NSData.dataWithContentsOfFile_.assert_called_once_with("/tmp/clip.png")
        pasteboard.setData_forType_.assert_called_once_with(data, "public.png")

    def test_write_missing_image(self, appkit, pasteboard):
        _, fake_foundation = appkit
        fake_foundation.NSData.dataWithContentsOfFile_.return_value = None
        with pytest.raises(ClipboardError):
            PasteboardClipboard().write_image("/nope.png")
        pasteboard.clearContents.assert_not_called()

    def test_write_image_pasteboard_exception_wrapped(self, appkit, pasteboard):
        _, fake_foundation = appkit
        fake_foundation.NSData.dataWithContentsOfFile_.return_value = object()
        pasteboard.setData_forType_.side_effect = RuntimeError("bad data")
        with pytest.raises(ClipboardError, match="bad data"):
            PasteboardClipboard().write_image("/tmp/clip.png")
