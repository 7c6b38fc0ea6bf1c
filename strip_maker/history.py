"""
StripMaker — Comic history.

Finished strips are kept in a small key-value store under one key,
"comic_history": a JSON array of up to 10 comics, most recent first.
The array is read once at startup and rewritten whole on every save.

Storage: SQLite (survives restarts, no server).
"""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from strip_maker.errors import StorageError
from strip_maker.models import Comic

logger = logging.getLogger(__name__)

DB_PATH = Path("data/strip_maker.db")

HISTORY_KEY = "comic_history"
HISTORY_CAPACITY = 10


class SQLiteKeyValueStore:
    """
    String key → string value table.

    Usage:
        store = SQLiteKeyValueStore("data/strip_maker.db")
        store.set("comic_history", "[]")
        store.get("comic_history")
    """

    def __init__(self, db_path: Path | str | None = None):
        self.db_path = str(db_path) if db_path else str(DB_PATH)
        self._shared: Optional[sqlite3.Connection] = None
        if self.db_path == ":memory:":
            # Each connect() to :memory: is a fresh database, so keep one open
            self._shared = sqlite3.connect(":memory:")
        else:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key        TEXT PRIMARY KEY,
                    value      TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

    def _connect(self) -> sqlite3.Connection:
        if self._shared is not None:
            return self._shared
        return sqlite3.connect(self.db_path)

    def get(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str):
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET
                       value = excluded.value,
                       updated_at = excluded.updated_at""",
                (key, value, datetime.now().isoformat()),
            )


class HistoryStore:
    """Bounded, most-recent-first list of finished comics."""

    def __init__(self, store: SQLiteKeyValueStore, capacity: int = HISTORY_CAPACITY):
        self._store = store
        self.capacity = capacity
        self._entries: tuple[Comic, ...] = self._load()

    def _load(self) -> tuple[Comic, ...]:
        raw = self._store.get(HISTORY_KEY)
        if not raw:
            return ()
        try:
            data = json.loads(raw)
            comics = tuple(Comic.from_dict(item) for item in data)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Comic history unreadable, starting empty: {e}")
            return ()
        logger.info(f"Loaded {len(comics)} comics from history")
        return comics[:self.capacity]

    @property
    def entries(self) -> tuple[Comic, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, comic_id: str) -> Optional[Comic]:
        for comic in self._entries:
            if comic.id == comic_id:
                return comic
        return None

    def save(self, comic: Comic) -> tuple[Comic, ...]:
        """
        Prepend a comic, drop the oldest past capacity, persist.

        Raises:
            StorageError: the store rejected the write (entries stay as they were)
        """
        entries = ((comic,) + self._entries)[:self.capacity]
        try:
            self._store.set(HISTORY_KEY, json.dumps([c.to_dict() for c in entries]))
        except sqlite3.Error as e:
            raise StorageError(f"Could not save '{comic.title}' to history: {e}") from e
        self._entries = entries
        logger.info(f"Saved '{comic.title}' to history ({len(entries)}/{self.capacity})")
        return entries
