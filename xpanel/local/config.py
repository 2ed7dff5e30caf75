import logging
from pathlib import Path
from typing import Dict

import xpanel.settings as default_settings

log = logging.getLogger(__name__)

# Accepted spellings of the configured log level.
LOG_LEVELS: Dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class ConfigError(Exception):
    """Raised when the bootstrap configuration holds an unusable value."""


class MergedSettings:
    """
    A singleton class exposing the bootstrap settings of the application.

    This class provides a unified, attribute-based access point for all
    configuration that is not stored in the panel database. It follows a clear
    precedence:
    1. Base values from `settings.py`.
    2. Overrides from the environment or a `.env` file (handled by
       `python-dotenv` in settings.py).
    """

    def __init__(self) -> None:
        """Initializes the settings object by loading defaults."""
        self._load_defaults()

    def _load_defaults(self) -> None:
        """
        Loads all uppercase attributes from the settings.py module as defaults.
        """
        for key in dir(default_settings):
            if key.isupper():
                setattr(self, key, getattr(default_settings, key))

    def get_db_path(self) -> Path:
        """Returns the path of the panel's SQLite database file."""
        return Path(self.DB_FOLDER) / f"{self.NAME}.db"

    def get_log_level(self) -> int:
        """
        Resolves the configured log level name into a `logging` level.

        :return: The numeric logging level.
        :raises ConfigError: If the configured name is not a known level.
        """
        name = str(self.LOG_LEVEL).lower()
        if self.DEBUG:
            return logging.DEBUG
        if name not in LOG_LEVELS:
            raise ConfigError(f"unknown log level: {self.LOG_LEVEL}")
        return LOG_LEVELS[name]

# Create a singleton instance to be imported by other modules
effective_settings = MergedSettings()
