"""
Database connection management.

Provides the SQLite connection backing durable local storage.
"""

import sqlite3
from pathlib import Path


def get_connection(db_path: str = "baby_tracker.db") -> sqlite3.Connection:
    """Create and return a SQLite connection, creating parent directories.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLite connection
    """
    path = Path(db_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(str(path))


def initialize_schema(db_path: str = "baby_tracker.db") -> None:
    """Create the key-value table used for locally persisted state.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS local_storage (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)
        conn.commit()
    finally:
        conn.close()
