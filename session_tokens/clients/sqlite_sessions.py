"""SQLite-backed persistence for authentication session records."""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, Optional

from session_tokens.services.session_cipher import SessionCipher

logger = logging.getLogger(__name__)


class SQLiteSessionStore:
    """Key-value store of session records keyed by (session_id, scheme)."""

    def __init__(self, db_path: str, cipher: Optional[SessionCipher] = None) -> None:
        self._db_path = Path(db_path)
        self._cipher = cipher
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS session_records (
                    session_id TEXT NOT NULL,
                    scheme TEXT NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (session_id, scheme)
                )
                """
            )

    def _dump(self, record: Dict[str, Any]) -> str:
        serialized = json.dumps(record, separators=(",", ":"))
        if self._cipher is None:
            return serialized
        return self._cipher.encrypt(serialized)

    def _load(self, data: str) -> Dict[str, Any]:
        if self._cipher is not None:
            data = self._cipher.decrypt(data)
        return json.loads(data)

    def put_record(self, *, session_id: str, scheme: str, record: Dict[str, Any]) -> None:
        if not session_id or not scheme:
            raise ValueError("Session records require a session id and scheme")

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO session_records (session_id, scheme, data)
                VALUES (?, ?, ?)
                ON CONFLICT(session_id, scheme) DO UPDATE SET data = excluded.data
                """,
                (session_id, scheme, self._dump(record)),
            )
        logger.debug("Persisted session record for scheme %s", scheme)

    def get_record(self, *, session_id: str, scheme: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM session_records WHERE session_id = ? AND scheme = ?",
                (session_id, scheme),
            ).fetchone()
        if not row:
            return None
        return self._load(row["data"])


__all__ = ["SQLiteSessionStore"]
