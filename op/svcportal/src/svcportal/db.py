# db.py
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, Optional

from .settings import settings

logger = logging.getLogger(__name__)


def get_conn(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn

def init_db(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = get_conn(db_path)
    cur = conn.cursor()
    cur.execute("""
    CREATE TABLE IF NOT EXISTS storage (
        key        TEXT PRIMARY KEY,
        value      TEXT NOT NULL,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    );""")
    conn.commit()
    conn.close()

def fetchone_dict(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    return dict(row) if row else None


class SessionStorage:
    """Durable home of the persisted session subset: ``{token, user}``.

    One row under ``key``; nothing else from the session is written here.
    """

    def __init__(self, path: str | Path | None = None, key: str | None = None):
        self.path = Path(path or settings.STORAGE_PATH)
        self.key = key or settings.STORAGE_KEY
        init_db(self.path)

    def load(self) -> Optional[Dict[str, Any]]:
        conn = get_conn(self.path)
        cur = conn.cursor()
        cur.execute("SELECT value FROM storage WHERE key=?;", (self.key,))
        row = fetchone_dict(cur.fetchone())
        conn.close()
        if row is None:
            return None
        try:
            record = json.loads(row["value"])
        except ValueError:
            logger.warning("discarding unreadable session record under %r", self.key)
            self.clear()
            return None
        return record if isinstance(record, dict) else None

    def save(self, token: str, user: Dict[str, Any]) -> None:
        value = json.dumps({"token": token, "user": user})
        conn = get_conn(self.path)
        cur = conn.cursor()
        cur.execute("""
            INSERT INTO storage(key, value, updated_at) VALUES(?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
        """, (self.key, value))
        conn.commit()
        conn.close()

    def clear(self) -> None:
        conn = get_conn(self.path)
        cur = conn.cursor()
        cur.execute("DELETE FROM storage WHERE key=?;", (self.key,))
        conn.commit()
        conn.close()
