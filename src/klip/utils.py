import re
from datetime import date, datetime, timezone
from pathlib import Path

from klip.config import DATA_DIR, IMAGE_DIR


def ensure_dirs(*dirs: Path) -> None:
    for directory in dirs or (DATA_DIR, IMAGE_DIR):
        Path(directory).mkdir(parents=True, exist_ok=True)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Serialize to the sortable UTC form stored in ``clips.created_at``.

    Naive datetimes are taken as local time.
    """
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


_FRACTION = re.compile(r"\.(\d+)")


def parse_timestamp(value: str) -> datetime:
    # fromisoformat on 3.10 only takes 3 or 6 fraction digits; nanosecond
    # RFC 3339 values are cut to microseconds.
    value = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1)
    # Values without an offset are UTC.
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def local_date(dt: datetime) -> date:
    return dt.astimezone().date()


def truncate_text(text: str, max_len: int) -> str:
    single_line = " ".join(text.split())
    if len(single_line) <= max_len:
        return single_line
    return single_line[: max_len - 3] + "..."
