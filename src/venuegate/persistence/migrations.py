"""Schema for the local flag database."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from venuegate.persistence.db import LocalDatabase

log = structlog.get_logger(__name__)

SCHEMA_VERSION = 1

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS schema_version (
        version     INTEGER PRIMARY KEY,
        applied_at  TEXT NOT NULL DEFAULT (datetime('now'))
    )
    """,
    # One row per flag key, values stored as 'true' / 'false'
    """
    CREATE TABLE IF NOT EXISTS local_flags (
        key         TEXT PRIMARY KEY,
        value       TEXT NOT NULL,
        updated_at  TEXT NOT NULL DEFAULT (datetime('now'))
    )
    """,
)


async def run_migrations(db: LocalDatabase) -> None:
    for ddl in _SCHEMA:
        await db.write(ddl)

    row = await db.fetch_one("SELECT COALESCE(MAX(version), 0) AS version FROM schema_version")
    applied = row["version"] if row else 0
    if applied >= SCHEMA_VERSION:
        return
    await db.write("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
    log.info("schema_migrated", from_version=applied, to_version=SCHEMA_VERSION)
