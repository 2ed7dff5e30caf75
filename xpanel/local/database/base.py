import sqlite3
import logging
import threading
from pathlib import Path
from contextlib import contextmanager
from typing import List, Optional, Tuple, Any, Generator

log = logging.getLogger(__name__)

Params = Optional[Tuple[Any, ...]]


class BaseDBManager:
    """
    Serializes access to one SQLite file.

    The CLI, the panel server thread and the subscription server thread all
    go through the same manager, so every statement runs on a short-lived
    connection opened under the manager's lock.
    """

    def __init__(self, db_path: Path, enable_wal: bool = False):
        """
        :param db_path: The SQLite file; its folder must exist before the first query.
        :param enable_wal: Switch the file to write-ahead logging on every connection.
        """
        self.db_path = Path(db_path)
        self.lock = threading.Lock()
        self.enable_wal = enable_wal

    @contextmanager
    def _connect(self, rows: bool = False) -> Generator[sqlite3.Connection, None, None]:
        with self.lock:
            conn = sqlite3.connect(self.db_path, timeout=10)
            if rows:
                conn.row_factory = sqlite3.Row
            if self.enable_wal:
                conn.execute("PRAGMA journal_mode=WAL;")
            try:
                yield conn
            finally:
                conn.close()

    def execute(self, sql: str, params: Params = None) -> List[Any]:
        """
        Runs a write statement (DDL, INSERT, UPDATE, DELETE) and commits it.

        :return: Any rows the statement produced, usually none.
        :raises sqlite3.Error: Logged, then propagated to the caller.
        """
        try:
            with self._connect() as conn:
                cursor = conn.execute(sql, params or ())
                conn.commit()
                return cursor.fetchall()
        except sqlite3.Error as e:
            log.error(f"Statement failed on {self.db_path.name}: {e}")
            raise

    def execute_many(self, sql: str, params: List[Tuple[Any, ...]]) -> None:
        """Runs one write statement per parameter tuple in a single transaction."""
        try:
            with self._connect() as conn:
                conn.executemany(sql, params)
                conn.commit()
        except sqlite3.Error as e:
            log.error(f"Batch of {len(params)} statements failed on {self.db_path.name}: {e}")
            raise

    def fetch_all(self, sql: str, params: Params = None) -> List[sqlite3.Row]:
        """Runs a query and returns every row, addressable by column name."""
        try:
            with self._connect(rows=True) as conn:
                return conn.execute(sql, params or ()).fetchall()
        except sqlite3.Error as e:
            log.error(f"Query failed on {self.db_path.name}: {e}")
            raise

    def fetch_one(self, sql: str, params: Params = None) -> Optional[sqlite3.Row]:
        """Runs a query and returns its first row, or None."""
        try:
            with self._connect(rows=True) as conn:
                return conn.execute(sql, params or ()).fetchone()
        except sqlite3.Error as e:
            log.error(f"Query failed on {self.db_path.name}: {e}")
            raise
