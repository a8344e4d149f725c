"""Data-directory resolution for durable venuegate storage.

The ``VENUEGATE_DATA_DIR`` environment variable is read only by
:class:`venuegate.settings.Settings`, which passes it here explicitly.
"""

from __future__ import annotations

from pathlib import Path

import structlog

log = structlog.get_logger(__name__)

DEFAULT_DIR_NAME = ".venuegate"
DB_FILE_NAME = "local_flags.db"


def db_path_in(data_dir: Path | str | None = None) -> Path:
    """Flag database location for ``data_dir`` (default ``~/.venuegate``), without touching disk."""
    base = Path(data_dir) if data_dir is not None else Path.home() / DEFAULT_DIR_NAME
    return base / DB_FILE_NAME


def get_data_dir(data_dir: Path | str | None = None) -> Path:
    """Return the data directory, creating it if missing."""
    path = db_path_in(data_dir).parent
    path.mkdir(parents=True, exist_ok=True)
    log.debug("data_dir_resolved", path=str(path))
    return path


def get_db_path(data_dir: Path | str | None = None) -> Path:
    """Return the path to the SQLite file holding the persisted flags."""
    return get_data_dir(data_dir) / DB_FILE_NAME
