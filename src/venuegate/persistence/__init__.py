"""Persistence layer for venuegate: SQLite-backed durable storage."""

from __future__ import annotations

from venuegate.persistence.db import LocalDatabase
from venuegate.persistence.migrations import run_migrations
from venuegate.persistence.paths import get_data_dir, get_db_path

__all__ = [
    "LocalDatabase",
    "get_data_dir",
    "get_db_path",
    "run_migrations",
]
