"""
Database connection management.
"""
import sqlite3
import logging
from pathlib import Path
from typing import Optional

from ..exceptions import DatabaseError
from .schema import ensure_schema

class DBManager:
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None

    def connect(self) -> sqlite3.Connection:
        """
        Connects to the SQLite database and makes sure the schema exists.
        Any failure here is fatal for the run.
        """
        if self._conn:
            return self._conn

        logging.info(f"Connecting to database: {self.db_path}")
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path)
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            ensure_schema(conn)
        except (OSError, sqlite3.Error) as e:
            raise DatabaseError(f"Cannot open catalog database {self.db_path}: {e}") from e

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
