"""
This module initializes the panel database.
`init_db` opens (and creates if needed) the database used by the services,
which reach it through `get_db`.
"""

import logging
from pathlib import Path
from typing import Optional

import xpanel.settings as default_settings
from .base import BaseDBManager
from .panel import PanelDBManager

log = logging.getLogger(__name__)

_db: Optional[PanelDBManager] = None


def init_db(db_path: Path) -> PanelDBManager:
    """
    Opens the panel database at `db_path`, creating tables on first use.

    :param db_path: The path to the SQLite database file.
    :return: The opened database manager.
    :raises sqlite3.Error, OSError: If the database cannot be created or opened.
    """
    global _db
    manager = PanelDBManager(db_path)
    manager.initialize_database(default_settings.DEFAULT_USERNAME, default_settings.DEFAULT_PASSWORD)
    _db = manager
    log.debug(f"Database opened at {db_path}")
    return manager


def get_db() -> PanelDBManager:
    """Returns the database opened by `init_db`."""
    if _db is None:
        raise RuntimeError("Database is not initialized. Call init_db() first.")
    return _db


__all__ = ["BaseDBManager", "PanelDBManager", "init_db", "get_db"]
