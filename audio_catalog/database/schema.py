"""
Database schema definitions.
"""
import sqlite3
import logging

CURRENT_SCHEMA_VERSION = 1


def init_schema(conn: sqlite3.Connection):
    """
    Applies the cache schema to the database.
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

        # 2. One row per analyzed file, keyed by absolute path.
        # Metadata columns are nullable; issues is a JSON array or NULL when empty.
        conn.execute("""
        CREATE TABLE IF NOT EXISTS audio_files (
            path                    TEXT PRIMARY KEY COLLATE NOCASE,
            name                    TEXT NOT NULL,
            ext                     TEXT NOT NULL,
            size_bytes              INTEGER NOT NULL,
            modified_at             TEXT NOT NULL,
            artist                  TEXT,
            album                   TEXT,
            title                   TEXT,
            year                    INTEGER,
            duration_sec            REAL,
            track                   INTEGER,
            total_tracks            INTEGER,
            disc                    INTEGER,
            total_discs             INTEGER,
            mime_type               TEXT,
            has_album_art           INTEGER,
            filename_matches_format INTEGER,
            issues                  TEXT
        );
        """)

    logging.debug("Database schema initialized.")
