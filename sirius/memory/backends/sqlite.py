"""
SQLite Backend

Stores memory documents in a single ``user_memory`` table keyed by user id.

Schema:
    user_memory(user_id TEXT PRIMARY KEY, document TEXT, updated_at DATETIME)
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

from .base import BackendStatus, MemoryBackend


class SQLiteBackend(MemoryBackend):
    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)

    @property
    def name(self) -> str:
        return "sqlite"

    def get_connection(self) -> sqlite3.Connection:
        """Get database connection, creating tables if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row

        conn.execute("""
            CREATE TABLE IF NOT EXISTS user_memory (
                user_id TEXT PRIMARY KEY,
                document TEXT NOT NULL,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.commit()
        return conn

    def read(self, user_id: str) -> str | None:
        conn = self.get_connection()
        try:
            row = conn.execute(
                "SELECT document FROM user_memory WHERE user_id = ?", (user_id,)
            ).fetchone()
        finally:
            conn.close()
        return row["document"] if row else None

    def write(self, user_id: str, document: str) -> None:
        conn = self.get_connection()
        try:
            conn.execute(
                """
                INSERT INTO user_memory (user_id, document, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    document = excluded.document,
                    updated_at = excluded.updated_at
            """,
                (user_id, document, datetime.now().isoformat()),
            )
            conn.commit()
        finally:
            conn.close()

    def delete(self, user_id: str) -> bool:
        conn = self.get_connection()
        try:
            cursor = conn.execute("DELETE FROM user_memory WHERE user_id = ?", (user_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def check(self) -> BackendStatus:
        try:
            conn = self.get_connection()
            conn.execute("SELECT COUNT(*) FROM user_memory").fetchone()
            conn.close()
        except (OSError, sqlite3.Error) as e:
            return BackendStatus(ready=False, backend=self.name, error=str(e))
        return BackendStatus(ready=True, backend=self.name, details={"database": str(self.db_path)})
