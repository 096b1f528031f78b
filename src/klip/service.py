"""Request/response façade used by the presentation layer.

Arguments arrive as raw strings from the UI; blank filters mean "no filter".
"""
from datetime import date

from klip.clipboard import Clipboard, ClipboardError
from klip.models import Clip
from klip.storage import ClipStore

DUPLICATE = "Duplicate"


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def parse_date_filter(value: str | None) -> date | None:
    if _blank(value):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD") from None


class QueryService:
    def __init__(self, store: ClipStore, clipboard: Clipboard | None = None):
        self._store = store
        self._clipboard = clipboard

    def get_clips(self, search_text: str | None = None, date_filter: str | None = None) -> list[Clip]:
        day = parse_date_filter(date_filter)
        return self._store.query(None if _blank(search_text) else search_text, day)

    def get_dates_with_clips(self) -> list[str]:
        return [d.isoformat() for d in self._store.distinct_dates()]

    def get_clip(self, clip_id: str) -> Clip | None:
        return self._store.get_clip(clip_id)

    def add_clip(self, content: str) -> str:
        clip_id = self._store.insert_text(content)
        return clip_id if clip_id is not None else DUPLICATE

    def update_clip_content(self, clip_id: str, content: str) -> None:
        self._store.update_content(clip_id, content)

    def delete_clip(self, clip_id: str) -> None:
        self._store.delete(clip_id)

    def toggle_favorite(self, clip_id: str) -> bool:
        return self._store.toggle_favorite(clip_id)

    def copy_to_clipboard(self, content: str) -> None:
        self._require_clipboard().write_text(content)

    def copy_image_to_clipboard(self, path: str) -> None:
        self._require_clipboard().write_image(path)

    def _require_clipboard(self) -> Clipboard:
        if self._clipboard is None:
            raise ClipboardError("No clipboard available")
        return self._clipboard
