import sqlite3
import logging
from pathlib import Path
from typing import Dict, List, Optional
from xpanel.local.database.base import BaseDBManager

log = logging.getLogger(__name__)

# Columns every inbound row must carry; used by the migration to patch
# databases created by older releases.
INBOUND_COLUMNS: Dict[str, str] = {
    "remark": "TEXT NOT NULL DEFAULT ''",
    "enable": "INTEGER NOT NULL DEFAULT 1",
    "protocol": "TEXT NOT NULL DEFAULT ''",
    "listen": "TEXT NOT NULL DEFAULT ''",
    "port": "INTEGER NOT NULL DEFAULT 0",
    "settings": "TEXT NOT NULL DEFAULT '{}'",
    "tag": "TEXT NOT NULL DEFAULT ''",
}


class PanelDBManager(BaseDBManager):
    """
    Manages all interactions with the panel's SQLite database: persisted
    settings, panel users, inbounds and their per-client traffic rows.
    """

    def __init__(self, db_path: Path):
        """
        Initializes the PanelDBManager.

        :param db_path: The path to the panel SQLite database file.
        """
        super().__init__(db_path, enable_wal=True)

    def initialize_database(self, default_username: str, default_password: str) -> None:
        """
        Ensures all necessary tables exist and seeds the default panel user.

        :param default_username: Username of the account created on first open.
        :param default_password: Password of the account created on first open.
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.execute("""
                CREATE TABLE IF NOT EXISTS settings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    key TEXT NOT NULL UNIQUE,
                    value TEXT
                )
            """)
            self.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL,
                    password TEXT NOT NULL
                )
            """)
            self.execute("""
                CREATE TABLE IF NOT EXISTS inbounds (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    remark TEXT NOT NULL DEFAULT '',
                    enable INTEGER NOT NULL DEFAULT 1,
                    protocol TEXT NOT NULL DEFAULT '',
                    listen TEXT NOT NULL DEFAULT '',
                    port INTEGER NOT NULL DEFAULT 0,
                    settings TEXT NOT NULL DEFAULT '{}',
                    tag TEXT NOT NULL DEFAULT ''
                )
            """)
            self.execute("""
                CREATE TABLE IF NOT EXISTS client_traffics (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    inbound_id INTEGER NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    up INTEGER NOT NULL DEFAULT 0,
                    down INTEGER NOT NULL DEFAULT 0,
                    enable INTEGER NOT NULL DEFAULT 1
                )
            """)
            if self.fetch_one("SELECT id FROM users LIMIT 1") is None:
                self.execute(
                    "INSERT INTO users (username, password) VALUES (?, ?)",
                    (default_username, default_password)
                )
                log.info(f"Created default panel user '{default_username}'.")
            log.debug(f"Panel database tables created/verified at {self.db_path}.")
        except sqlite3.Error as e:
            log.critical(f"Could not create panel database tables: {e}", exc_info=True)
            raise

    #* --- Settings ---
    def get_setting(self, key: str) -> Optional[str]:
        """Returns the stored text value of a setting, or None if unset."""
        row = self.fetch_one("SELECT value FROM settings WHERE key = ?", (key,))
        return row["value"] if row else None

    def set_setting(self, key: str, value: str) -> None:
        """Inserts or replaces the stored text value of a setting."""
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value)
        )

    def delete_all_settings(self) -> None:
        """Removes every persisted setting so defaults apply again."""
        self.execute("DELETE FROM settings")

    #* --- Users ---
    def get_first_user(self) -> Optional[sqlite3.Row]:
        return self.fetch_one("SELECT id, username, password FROM users ORDER BY id LIMIT 1")

    def update_user(self, user_id: int, username: str, password: str) -> None:
        self.execute(
            "UPDATE users SET username = ?, password = ? WHERE id = ?",
            (username, password, user_id)
        )

    #* --- Inbounds ---
    def get_inbound_columns(self) -> List[str]:
        return [row["name"] for row in self.fetch_all("PRAGMA table_info(inbounds)")]

    def get_inbounds(self, enabled_only: bool = False) -> List[sqlite3.Row]:
        sql = "SELECT * FROM inbounds"
        if enabled_only:
            sql += " WHERE enable = 1"
        return self.fetch_all(sql + " ORDER BY id")

    def add_inbound(self, remark: str, protocol: str, port: int, settings: str,
                    listen: str = "", enable: bool = True) -> int:
        """Inserts an inbound and returns its id."""
        self.execute(
            "INSERT INTO inbounds (remark, enable, protocol, listen, port, settings, tag) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (remark, int(enable), protocol, listen, port, settings, f"inbound-{port}")
        )
        row = self.fetch_one("SELECT MAX(id) AS id FROM inbounds")
        return row["id"]

    def update_inbound_settings(self, inbound_id: int, settings: str) -> None:
        self.execute("UPDATE inbounds SET settings = ? WHERE id = ?", (settings, inbound_id))

    #* --- Client Traffic ---
    def get_traffic_emails(self) -> List[str]:
        return [row["email"] for row in self.fetch_all("SELECT email FROM client_traffics")]

    def add_client_traffic(self, inbound_id: int, email: str, enable: bool = True) -> None:
        self.execute(
            "INSERT OR IGNORE INTO client_traffics (inbound_id, email, enable) VALUES (?, ?, ?)",
            (inbound_id, email, int(enable))
        )

    def delete_orphaned_traffics(self) -> int:
        """
        Deletes traffic rows whose inbound no longer exists.

        :return: The number of rows removed.
        """
        orphans = self.fetch_all(
            "SELECT id FROM client_traffics WHERE inbound_id NOT IN (SELECT id FROM inbounds)"
        )
        if orphans:
            self.execute_many("DELETE FROM client_traffics WHERE id = ?", [(row["id"],) for row in orphans])
        return len(orphans)
