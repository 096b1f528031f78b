import os
from pathlib import Path

DATA_DIR = Path(os.environ.get("KLIP_DATA_DIR", Path.home() / ".local" / "share" / "klip"))
DB_PATH = DATA_DIR / "klip.db"
IMAGE_DIR = DATA_DIR / "images"
LOG_PATH = DATA_DIR / "klip.log"

QUERY_LIMIT = 50  # rows returned by a history query
POOL_SIZE = 5  # sqlite connections shared by the monitor and callers
PREVIEW_LENGTH = 60  # characters shown per clip in `klip list`


def _parse_retention_days() -> int:
    raw = os.environ.get("KLIP_RETENTION_DAYS")
    if raw is None:
        return 90
    try:
        value = int(raw)
    except ValueError:
        return 90
    return max(1, min(3650, value))


def _parse_poll_interval() -> float:
    raw = os.environ.get("KLIP_POLL_INTERVAL")
    if raw is None:
        return 1.0
    try:
        value = float(raw)
    except ValueError:
        return 1.0
    return max(0.1, min(60.0, value))


RETENTION_DAYS = _parse_retention_days()  # non-favorite clips older than this are swept at startup
POLL_INTERVAL = _parse_poll_interval()  # seconds between clipboard checks
