"""Single-connection aiosqlite wrapper for the local flag database."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from venuegate.errors import StorageError

log = structlog.get_logger(__name__)


class LocalDatabase:
    """One WAL-mode SQLite connection, migrated on open.

    Usage::

        async with LocalDatabase(path) as db:
            row = await db.fetch_one("SELECT value FROM local_flags WHERE key = ?", (key,))
    """

    def __init__(self, db_path: Path | str | None = None) -> None:
        if db_path is None:
            from venuegate.persistence.paths import get_db_path
            db_path = get_db_path()
        self.path = Path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def open(self) -> None:
        """Connect and bring the schema up to date. Safe to call twice."""
        if self._conn is not None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(self.path)
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA journal_mode = WAL")
        self._conn = conn

        from venuegate.persistence.migrations import run_migrations
        await run_migrations(self)
        log.info("local_db_opened", path=str(self.path))

    async def close(self) -> None:
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        await conn.close()
        log.debug("local_db_closed", path=str(self.path))

    async def __aenter__(self) -> LocalDatabase:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def fetch_one(self, sql: str, params: tuple[Any, ...] = ()) -> dict[str, Any] | None:
        async with self._connection().execute(sql, params) as cursor:
            row = await cursor.fetchone()
        return dict(row) if row is not None else None

    async def write(self, sql: str, params: tuple[Any, ...] = ()) -> int:
        """Run one statement and commit. Returns affected rows, 0 for DDL."""
        conn = self._connection()
        async with conn.execute(sql, params) as cursor:
            affected = max(cursor.rowcount, 0)
        await conn.commit()
        return affected

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StorageError(f"local database {self.path} is not open", code="db_closed")
        return self._conn
