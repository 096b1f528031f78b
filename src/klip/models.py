from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ClipType(str, Enum):
    TEXT = "text"
    IMAGE = "image"


@dataclass
class Clip:
    id: str
    content: str
    created_at: datetime
    is_favorite: bool = False
    clip_type: ClipType = ClipType.TEXT
    image_path: str | None = None
    search_content: str | None = None


@dataclass
class DeleteResult:
    """Outcome of a delete.

    ``image_removed`` reports the best-effort file cleanup separately; it is
    None when the clip had no backing image.
    """

    found: bool
    image_removed: bool | None = None
