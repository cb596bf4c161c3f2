import logging
import sqlite3
from pathlib import Path

from book_lending.config import settings

logger = logging.getLogger(__name__)

# Default database file, resolved from DATABASE_URL.
DATABASE_FILE = settings.database_file


def get_db_connection(db_file: str | None = None) -> sqlite3.Connection:
    """Establishes a connection to the SQLite database."""
    conn = sqlite3.connect(db_file or DATABASE_FILE)
    conn.row_factory = sqlite3.Row
    return conn


def create_tables(db_file: str | None = None) -> None:
    """Creates the book document table if it doesn't exist.

    The whole book is kept as a JSON document. Title, author and edition are
    copied into their own columns so duplicate checks are exact-match lookups,
    and a unique index keeps that triple unique even under concurrent writes.
    A missing edition counts as the empty string there.
    """
    conn = get_db_connection(db_file)
    try:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS books (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                author TEXT NOT NULL,
                edition TEXT,
                document TEXT NOT NULL,
                version INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE UNIQUE INDEX IF NOT EXISTS uq_books_triple
                ON books (title, author, ifnull(edition, ''));
        """)
        conn.commit()
    finally:
        conn.close()


def initialize_database(db_file: str | None = None) -> None:
    """Initializes the database, creating parent directories and tables if needed."""
    path = db_file or DATABASE_FILE
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    create_tables(path)
    logger.info(f"Database ready at {path}")
