"""SQLite management utilities."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator, Sequence

DEFAULT_PRAGMAS = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA foreign_keys=ON;",
    "PRAGMA temp_store=MEMORY;",
)


class SQLiteDatabase:
    """Thin wrapper around sqlite3 handing out one connection per operation.

    Requests run on the event loop and in worker threads, so connections are
    never shared: every call acquires its own and releases it on exit.
    """

    def __init__(self, db_path: Path, timeout: float = 30.0) -> None:
        self.db_path = db_path.expanduser()
        self.timeout = timeout

    def _open(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        for pragma in DEFAULT_PRAGMAS:
            conn.execute(pragma)
        return conn

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = self._open()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        with self.connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute("BEGIN IMMEDIATE")
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cursor.close()

    def executescript(self, script: str) -> None:
        with self.connection() as conn:
            conn.executescript(script)

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> int:
        """Run a single write statement in its own transaction; return rowcount."""
        with self.transaction() as cursor:
            cursor.execute(sql, params or [])
            return cursor.rowcount

    def executemany(self, sql: str, seq_of_params: Iterable[Sequence[Any]]) -> int:
        with self.transaction() as cursor:
            cursor.executemany(sql, seq_of_params)
            return cursor.rowcount

    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[sqlite3.Row]:
        with self.connection() as conn:
            return conn.execute(sql, params or []).fetchall()

    def query_one(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Row | None:
        with self.connection() as conn:
            return conn.execute(sql, params or []).fetchone()

    def ensure_schema(self, schema_sql: str | None = None) -> None:
        if schema_sql is None:
            schema_path = Path(__file__).with_name("schema.sql")
            schema_sql = schema_path.read_text(encoding="utf-8")
        self.executescript(schema_sql)


__all__ = ["SQLiteDatabase"]
