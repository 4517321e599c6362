from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from segsso.application.ports.session_store_port import SessionStorePort

SCHEMA = """
CREATE TABLE IF NOT EXISTS sso_session (
  session_id TEXT NOT NULL,
  key TEXT NOT NULL,
  value TEXT NOT NULL,
  updated_at TEXT NOT NULL,
  PRIMARY KEY (session_id, key)
);
"""


class SQLiteSessionStore(SessionStorePort):
    """SQLite-backed session store. Survives restarts of the host app.

    One instance is bound to one session id; the database file is shared.
    Creates schema on first use.
    """

    def __init__(self, session_id: str, db_path: str = ".segsso_sessions.sqlite") -> None:
        self.session_id = session_id
        self._path = Path(db_path)
        # requests may hop between the event loop and worker threads
        self._conn = sqlite3.connect(self._path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.executescript(SCHEMA)
        self._conn.commit()

    def get(self, key: str) -> str | None:
        cur = self._conn.execute(
            "SELECT value FROM sso_session WHERE session_id=? AND key=?",
            (self.session_id, key),
        )
        row = cur.fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self._conn.execute(
            "INSERT INTO sso_session (session_id, key, value, updated_at) VALUES (?, ?, ?, ?) "
            "ON CONFLICT(session_id, key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
            (self.session_id, key, value, datetime.now(UTC).isoformat()),
        )
        self._conn.commit()

    def delete(self, key: str) -> None:
        self._conn.execute(
            "DELETE FROM sso_session WHERE session_id=? AND key=?", (self.session_id, key)
        )
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()


class SQLiteSessionRegistry:
    def __init__(self, db_path: str) -> None:
        self.db_path = db_path

    def __call__(self, session_id: str) -> SQLiteSessionStore:
        return SQLiteSessionStore(session_id, db_path=self.db_path)
