import logging
import queue
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from pathlib import Path

from klip.config import DB_PATH, IMAGE_DIR, POOL_SIZE, QUERY_LIMIT, RETENTION_DAYS
from klip.models import Clip, ClipType, DeleteResult
from klip.normalize import normalize_text
from klip.utils import ensure_dirs, format_timestamp, local_date, parse_timestamp, utc_now

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS clips (
    id          TEXT PRIMARY KEY,
    content     TEXT NOT NULL,
    created_at  TEXT DEFAULT (strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now')),
    is_favorite BOOLEAN DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_clips_created_at ON clips(created_at DESC);
"""

MIGRATIONS = (
    "ALTER TABLE clips ADD COLUMN search_content TEXT",
    "ALTER TABLE clips ADD COLUMN clip_type TEXT DEFAULT 'text'",
    "ALTER TABLE clips ADD COLUMN image_path TEXT",
)

LOCAL_DAY = "strftime('%Y-%m-%d', created_at, 'localtime')"


class StorageError(Exception):
    """Raised when the clip database cannot be read or written."""


class ConnectionPool:
    """A fixed set of sqlite connections shared between threads.

    Callers borrow a connection with :meth:`connection` and block until one
    is free. An in-memory database gets a single connection because every
    connection to ``:memory:`` opens its own private database.
    """

    def __init__(self, db_path: str, size: int = POOL_SIZE, timeout: float = 5.0):
        self._db_path = db_path
        self._timeout = timeout
        self._closed = False
        self._connections: list[sqlite3.Connection] = []
        self._idle: queue.Queue = queue.Queue()
        if db_path == ":memory:":
            size = 1
        try:
            for _ in range(max(1, size)):
                conn = self._connect()
                self._connections.append(conn)
                self._idle.put(conn)
        except sqlite3.Error as exc:
            self.close()
            raise StorageError(f"Cannot open database {db_path}: {exc}") from exc

    @property
    def size(self) -> int:
        return len(self._connections)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=self._timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        if self._closed:
            raise StorageError("Connection pool is closed")
        conn = self._idle.get()
        try:
            yield conn
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(str(exc)) from exc
        finally:
            self._idle.put(conn)

    def close(self) -> None:
        self._closed = True
        for conn in self._connections:
            conn.close()
        self._connections.clear()


class ClipStore:
    """Durable clip history.

    Construction runs the whole startup sequence (schema, migrations,
    ``search_content`` backfill, image directory, retention sweep) before
    returning, so a ``ClipStore`` is always ready to serve.
    """

    def __init__(
        self,
        db_path: str | Path | None = None,
        image_dir: str | Path | None = None,
        retention_days: int | None = None,
        pool_size: int = POOL_SIZE,
    ):
        self._db_path = str(db_path) if db_path else str(DB_PATH)
        self._image_dir = Path(image_dir) if image_dir else IMAGE_DIR
        self._retention_days = retention_days if retention_days is not None else RETENTION_DAYS
        if self._db_path != ":memory:":
            ensure_dirs(Path(self._db_path).parent)
        self._pool = ConnectionPool(self._db_path, size=pool_size)
        self.init_db()
        ensure_dirs(self._image_dir)
        self.purge_expired()

    @property
    def image_dir(self) -> Path:
        return self._image_dir

    def init_db(self) -> None:
        with self._pool.connection() as conn:
            conn.executescript(SCHEMA)
            self._migrate_schema(conn)
            self._normalize_timestamps(conn)
            self._backfill_search_content(conn)
            conn.commit()

    @staticmethod
    def _migrate_schema(conn: sqlite3.Connection) -> None:
        """Add columns introduced after the first release."""
        for statement in MIGRATIONS:
            try:
                conn.execute(statement)
            except sqlite3.OperationalError as exc:
                if "duplicate column name" not in str(exc):
                    raise

    @staticmethod
    def _normalize_timestamps(conn: sqlite3.Connection) -> None:
        """Rewrite legacy ``created_at`` values (space separated, no offset) to the stored UTC form."""
        cursor = conn.execute(
            """UPDATE clips SET created_at = strftime('%Y-%m-%dT%H:%M:%f+00:00', created_at)
                WHERE created_at NOT LIKE '____-__-__T__:__:__%+00:00'
                  AND strftime('%Y-%m-%dT%H:%M:%f+00:00', created_at) IS NOT NULL"""
        )
        if cursor.rowcount > 0:
            logger.info("Normalized timestamps of %d clips", cursor.rowcount)

    @staticmethod
    def _backfill_search_content(conn: sqlite3.Connection) -> None:
        rows = conn.execute("SELECT id, content FROM clips WHERE search_content IS NULL").fetchall()
        if not rows:
            return
        conn.executemany(
            "UPDATE clips SET search_content = ? WHERE id = ?",
            [(normalize_text(row["content"] or ""), row["id"]) for row in rows],
        )
        logger.info("Backfilled search content for %d clips", len(rows))

    @staticmethod
    def _remove_image(image_path: str | None) -> bool | None:
        if not image_path:
            return None
        try:
            Path(image_path).unlink(missing_ok=True)
        except OSError:
            logger.warning("Could not remove image file %s", image_path, exc_info=True)
            return False
        return True

    def insert_text(self, content: str, created_at: datetime | None = None) -> str | None:
        """Store a text clip and return its id.

        Returns None without writing anything when the same text was already
        stored on the same local calendar day.
        """
        created_at = created_at or utc_now()
        clip_id = str(uuid.uuid4())
        # Duplicate check and write are a single statement.
        with self._pool.connection() as conn:
            cursor = conn.execute(
                f"""INSERT INTO clips
                   (id, content, created_at, is_favorite, search_content, clip_type, image_path)
                   SELECT ?, ?, ?, ?, ?, ?, NULL
                   WHERE NOT EXISTS (
                       SELECT 1 FROM clips WHERE clip_type = 'text' AND content = ? AND {LOCAL_DAY} = ?
                   )""",
                (
                    clip_id,
                    content,
                    format_timestamp(created_at),
                    False,
                    normalize_text(content),
                    ClipType.TEXT.value,
                    content,
                    local_date(created_at).isoformat(),
                ),
            )
            conn.commit()
        return clip_id if cursor.rowcount > 0 else None

    def insert_image(self, png_bytes: bytes, created_at: datetime | None = None) -> str:
        """Store PNG data as ``<id>.png`` and record an image clip for it."""
        created_at = created_at or utc_now()
        clip_id = str(uuid.uuid4())
        path = self._image_dir / f"{clip_id}.png"
        path.write_bytes(png_bytes)
        try:
            with self._pool.connection() as conn:
                conn.execute(
                    """INSERT INTO clips
                       (id, content, created_at, is_favorite, search_content, clip_type, image_path)
                       VALUES (?, '', ?, ?, '', ?, ?)""",
                    (clip_id, format_timestamp(created_at), False, ClipType.IMAGE.value, str(path)),
                )
                conn.commit()
        except StorageError:
            self._remove_image(str(path))
            raise
        return clip_id

    def update_content(self, clip_id: str, content: str) -> bool:
        with self._pool.connection() as conn:
            cursor = conn.execute(
                "UPDATE clips SET content = ?, search_content = ? WHERE id = ?",
                (content, normalize_text(content), clip_id),
            )
            conn.commit()
        return cursor.rowcount > 0

    def toggle_favorite(self, clip_id: str) -> bool:
        with self._pool.connection() as conn:
            conn.execute("UPDATE clips SET is_favorite = NOT is_favorite WHERE id = ?", (clip_id,))
            conn.commit()
            row = conn.execute("SELECT is_favorite FROM clips WHERE id = ?", (clip_id,)).fetchone()
        return bool(row["is_favorite"]) if row else False

    def get_clip(self, clip_id: str) -> Clip | None:
        with self._pool.connection() as conn:
            row = conn.execute("SELECT * FROM clips WHERE id = ?", (clip_id,)).fetchone()
        return self._row_to_clip(row) if row else None

    def delete(self, clip_id: str) -> DeleteResult:
        with self._pool.connection() as conn:
            row = conn.execute("SELECT image_path FROM clips WHERE id = ?", (clip_id,)).fetchone()
            if row is None:
                return DeleteResult(found=False)
            image_removed = self._remove_image(row["image_path"])
            conn.execute("DELETE FROM clips WHERE id = ?", (clip_id,))
            conn.commit()
        return DeleteResult(found=True, image_removed=image_removed)

    def query(
        self,
        search_text: str | None = None,
        date_filter: date | None = None,
        limit: int = QUERY_LIMIT,
    ) -> list[Clip]:
        clauses = []
        params: list = []
        if search_text:
            # instr() keeps % and _ in the query literal, unlike LIKE
            clauses.append("instr(search_content, ?) > 0")
            params.append(normalize_text(search_text))
        if date_filter is not None:
            clauses.append(f"{LOCAL_DAY} = ?")
            params.append(date_filter.isoformat())

        where = " AND ".join(clauses) if clauses else "1 = 1"
        params.append(limit)
        with self._pool.connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM clips WHERE {where} ORDER BY created_at DESC, rowid DESC LIMIT ?",
                params,
            ).fetchall()
        return [self._row_to_clip(r) for r in rows]

    def distinct_dates(self) -> list[date]:
        with self._pool.connection() as conn:
            rows = conn.execute(
                f"""SELECT day FROM (SELECT DISTINCT {LOCAL_DAY} AS day FROM clips)
                    WHERE day IS NOT NULL
                    ORDER BY day DESC"""
            ).fetchall()
        return [date.fromisoformat(row["day"]) for row in rows]

    def purge_expired(self, retention_days: int | None = None) -> int:
        days = retention_days if retention_days is not None else self._retention_days
        cutoff = format_timestamp(utc_now() - timedelta(days=days))
        with self._pool.connection() as conn:
            rows = conn.execute(
                "SELECT id, image_path FROM clips WHERE is_favorite = 0 AND julianday(created_at) < julianday(?)",
                (cutoff,),
            ).fetchall()
            for row in rows:
                self._remove_image(row["image_path"])
            conn.executemany("DELETE FROM clips WHERE id = ?", [(row["id"],) for row in rows])
            conn.commit()

        if rows:
            logger.info("Retention sweep removed %d clips older than %d days", len(rows), days)
        return len(rows)

    def count(self) -> int:
        with self._pool.connection() as conn:
            row = conn.execute("SELECT COUNT(*) AS cnt FROM clips").fetchone()
        return row["cnt"]

    def close(self) -> None:
        self._pool.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @staticmethod
    def _row_to_clip(row: sqlite3.Row) -> Clip:
        return Clip(
            id=row["id"],
            content=row["content"],
            created_at=parse_timestamp(row["created_at"]),
            is_favorite=bool(row["is_favorite"]),
            clip_type=ClipType(row["clip_type"] or ClipType.TEXT.value),
            image_path=row["image_path"],
            search_content=row["search_content"],
        )
