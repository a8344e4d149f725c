"""SQLite-backed flag store for flags that survive restarts."""

from __future__ import annotations

import structlog

from venuegate.persistence.db import LocalDatabase

log = structlog.get_logger(__name__)

_UPSERT_SQL = """
    INSERT INTO local_flags (key, value, updated_at)
    VALUES (?, ?, datetime('now'))
    ON CONFLICT(key) DO UPDATE SET
        value      = excluded.value,
        updated_at = excluded.updated_at
"""

_SELECT_SQL = "SELECT value FROM local_flags WHERE key = ?"

_DELETE_SQL = "DELETE FROM local_flags WHERE key = ?"


class SQLiteFlagStore:
    """Durable flag store; values are stored as the strings ``'true'``/``'false'``."""

    def __init__(self, db: LocalDatabase) -> None:
        self._db = db

    async def initialize(self) -> None:
        await self._db.open()

    async def get(self, key: str) -> bool:
        row = await self._db.fetch_one(_SELECT_SQL, (key,))
        return row is not None and row["value"] == "true"

    async def set(self, key: str, value: bool = True) -> None:
        await self._db.write(_UPSERT_SQL, (key, "true" if value else "false"))
        log.debug("flag_set", key=key, value=value)

    async def clear(self, key: str) -> None:
        deleted = await self._db.write(_DELETE_SQL, (key,))
        log.debug("flag_cleared", key=key, deleted=deleted)

    async def close(self) -> None:
        await self._db.close()
