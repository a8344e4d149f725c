"""Pick the persisted-flag backend once, at construction time."""

from __future__ import annotations

import os
from pathlib import Path

import structlog

from venuegate.config import FlagBackend, VenueGateConfig
from venuegate.flags.base import FlagStore

logger = structlog.get_logger()


def detect_flag_store(config: VenueGateConfig) -> FlagStore:
    """Return the flag store for ``config.flag_backend``.

    Resolution for ``auto``:
    1. sqlite, when the database location is writable - flags survive restarts
    2. memory - flags last for the process only
    """
    backend = config.flag_backend

    if backend is FlagBackend.MEMORY:
        from venuegate.flags.memory import InMemoryFlagStore

        logger.info("flag_store_selected", backend="memory", reason="explicit")
        return InMemoryFlagStore()

    if backend is FlagBackend.SQLITE:
        logger.info("flag_store_selected", backend="sqlite", reason="explicit")
        return _sqlite_store(config)

    db_path = _resolve_db_path(config)
    if db_path is not None:
        logger.info("flag_store_selected", backend="sqlite", reason="auto_detected", path=str(db_path))
        return _sqlite_store(config, db_path)

    from venuegate.flags.memory import InMemoryFlagStore

    logger.warning("flag_store_fallback", requested="auto", actual="memory", reason="not_writable")
    return InMemoryFlagStore()


def _resolve_db_path(config: VenueGateConfig) -> Path | None:
    """Database path when its directory exists (or can be created) and is writable."""
    from venuegate.persistence.paths import get_db_path

    try:
        path = Path(config.flag_db_path) if config.flag_db_path else get_db_path()
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        return None
    return path if os.access(path.parent, os.W_OK) else None


def _sqlite_store(config: VenueGateConfig, db_path: Path | None = None) -> FlagStore:
    from venuegate.flags.sqlite import SQLiteFlagStore
    from venuegate.persistence.db import LocalDatabase

    return SQLiteFlagStore(LocalDatabase(db_path or config.flag_db_path))
