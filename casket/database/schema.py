"""
Database schema definitions.
"""
import sqlite3
import logging

CURRENT_SCHEMA_VERSION = 1

def ensure_schema(conn: sqlite3.Connection):
    """
    Applies the catalog schema to the database.
    Idempotent: safe to run on every startup.
    """
    with conn:
        # 1. Version Tracking (For future migrations)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            );
        """)

        cur = conn.cursor()
        cur.execute("SELECT version FROM schema_version")
        if not cur.fetchone():
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (CURRENT_SCHEMA_VERSION,))

        # 2. Catalog Table
        # One row per source path; re-importing the same path is ignored.
        conn.execute("""
        CREATE TABLE IF NOT EXISTS media_items (
            id                INTEGER PRIMARY KEY AUTOINCREMENT,
            original_path     TEXT NOT NULL UNIQUE,
            data_path         TEXT NOT NULL,
            thumbnail_path    TEXT,
            datetime_original TEXT,                 -- ISO 8601 with offset
            datetime_indexed  TEXT NOT NULL,        -- YYYYMMDDHH
            camera_make       TEXT,
            camera_model      TEXT,
            imported_at       TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        );
        """)

        # 3. Indices for Performance
        conn.execute("CREATE INDEX IF NOT EXISTS idx_media_items_indexed ON media_items(datetime_indexed);")

    logging.debug("Database schema initialized.")
