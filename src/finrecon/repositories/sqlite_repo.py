from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Sequence

from finrecon.repositories.sql_repo import SqlRepository


class SqliteRepository(SqlRepository):
    """Reads a local SQLite copy of the bookkeeping database.

    Each call opens its own connection, so concurrent report fetches share
    nothing. The schema is owned by the application that writes the data.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = str(db_path)

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.row_factory = sqlite3.Row
        return conn

    def _query(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute(sql, tuple(params))
            rows = cur.fetchall()
        finally:
            conn.close()
        return [dict(r) for r in rows]
