"""
Database connection management.
"""
import sqlite3
import logging
from pathlib import Path
from typing import Optional

from ..exceptions import CacheError
from .schema import init_schema


class DBManager:
    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None

    def connect(self) -> sqlite3.Connection:
        """
        Opens the cache file (creating its directory), configures pragmas
        and ensures the schema. Any failure here means the cache cannot be
        trusted, so it is raised as CacheError.
        """
        if self._conn:
            return self._conn

        logging.info(f"Connecting to library cache: {self.db_path}")
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            # The synchronizer may run on a worker thread; one run at a time.
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
        except (OSError, sqlite3.Error) as e:
            raise CacheError(f"Cannot open library cache {self.db_path}: {e}") from e

        try:
            # Safe for single-writer, multi-reader
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.execute("PRAGMA temp_store=MEMORY;")
            init_schema(conn)
        except sqlite3.Error as e:
            conn.close()
            raise CacheError(f"Cannot initialize library cache {self.db_path}: {e}") from e

        self._conn = conn
        return self._conn

    def close(self):
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self.connect()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
