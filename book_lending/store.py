"""Persistence boundary for book documents.

``BookStore`` keeps one JSON document per book in SQLite and exposes the
handful of query shapes the lending service needs: insert, list, lookup by
id, exact-match lookup on the duplicate triple, partial update, versioned
write-back and delete. Every ``sqlite3.Error`` is re-raised as
``StoreError`` so callers deal with a single failure type.
"""

import json
import logging
import os
import sqlite3
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from book_lending import database
from book_lending.book import Book, utcnow_iso

logger = logging.getLogger(__name__)

# Columns that may be used in exact-match filters.
FILTER_FIELDS = ("title", "author", "edition")


class StoreError(Exception):
    """Raised when the underlying database fails."""


class DuplicateError(StoreError):
    """Raised when a write would give two books the same title, author and edition."""


def new_object_id() -> str:
    """Return a 24-hex-digit id: 4 bytes of epoch seconds then 8 random bytes."""
    return f"{int(time.time()) & 0xFFFFFFFF:08x}{os.urandom(8).hex()}"


class BookStore:
    """Book documents in a SQLite file."""

    def __init__(self, db_file: Optional[str] = None) -> None:
        self.db_file = db_file or database.DATABASE_FILE
        with self._errors():
            database.initialize_database(self.db_file)

    @contextmanager
    def _errors(self) -> Iterator[None]:
        try:
            yield
        except sqlite3.IntegrityError as e:
            raise DuplicateError(str(e)) from e
        except sqlite3.Error as e:
            logger.error(f"Database error on {self.db_file}: {e}")
            raise StoreError(str(e)) from e

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        with self._errors():
            conn = database.get_db_connection(self.db_file)
            try:
                yield conn
            finally:
                conn.close()

    @staticmethod
    def _row_to_book(row: sqlite3.Row) -> Book:
        data = json.loads(row["document"])
        data["id"] = row["id"]
        data["version"] = row["version"]
        return Book.from_dict(data)

    @staticmethod
    def _document(book: Book) -> str:
        data = book.to_dict()
        data.pop("id", None)
        return json.dumps(data, ensure_ascii=False)

    # ------------------------- Queries ------------------------- #
    def create(self, book: Book) -> Book:
        """Insert a new book, assigning its id and timestamps."""
        now = utcnow_iso()
        book.id = new_object_id()
        book.created_at = now
        book.updated_at = now
        book.version = 0
        with self._connection() as conn:
            conn.execute(
                """
                INSERT INTO books (id, title, author, edition, document, version, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (book.id, book.title, book.author, book.edition,
                 self._document(book), book.version, now, now),
            )
            conn.commit()
        return book

    def find_all(self) -> List[Book]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT id, document, version FROM books ORDER BY rowid"
            ).fetchall()
        return [self._row_to_book(row) for row in rows]

    def find_by_id(self, book_id: str) -> Optional[Book]:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT id, document, version FROM books WHERE id = ?", (book_id,)
            ).fetchone()
        return self._row_to_book(row) if row else None

    def find_one(self, **filters: Any) -> Optional[Book]:
        """Return the first book whose fields equal every filter value.

        ``None`` matches a missing value (SQL ``IS``).
        """
        unknown = set(filters) - set(FILTER_FIELDS)
        if unknown:
            raise ValueError(f"Cannot filter on: {', '.join(sorted(unknown))}")
        clauses = " AND ".join(f"{field} IS ?" for field in filters) or "1 = 1"
        with self._connection() as conn:
            row = conn.execute(
                f"SELECT id, document, version FROM books WHERE {clauses} LIMIT 1",
                tuple(filters.values()),
            ).fetchone()
        return self._row_to_book(row) if row else None

    def update_by_id(self, book_id: str, fields: Dict[str, Any],
                     expected_version: Optional[int] = None) -> Optional[Book]:
        """Merge ``fields`` (wire names) into the stored document.

        Returns the updated book, or ``None`` when no book has this id or,
        with ``expected_version``, when the stored version has moved on.
        """
        book = self.find_by_id(book_id)
        if book is None:
            return None
        if expected_version is not None and book.version != expected_version:
            return None
        data = book.to_dict()
        data.update(fields)
        data["version"] = book.version
        merged = Book.from_dict(data)
        return merged if self.save(merged) else None

    def save(self, book: Book) -> bool:
        """Write the whole book back if its stored version still matches.

        Returns ``False`` when the book is gone or was changed by someone else.
        """
        book.updated_at = utcnow_iso()
        with self._connection() as conn:
            cursor = conn.execute(
                """
                UPDATE books
                   SET title = ?, author = ?, edition = ?, document = ?,
                       version = version + 1, updated_at = ?
                 WHERE id = ? AND version = ?
                """,
                (book.title, book.author, book.edition, self._document(book),
                 book.updated_at, book.id, book.version),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return False
        book.version += 1
        return True

    def delete_by_id(self, book_id: str) -> Optional[Book]:
        """Delete a book and return it, or ``None`` if it did not exist."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT id, document, version FROM books WHERE id = ?", (book_id,)
            ).fetchone()
            if row is None:
                return None
            conn.execute("DELETE FROM books WHERE id = ?", (book_id,))
            conn.commit()
        return self._row_to_book(row)

    def count(self) -> int:
        with self._connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM books").fetchone()[0]

    def ping(self) -> bool:
        """Quick connectivity probe for health checks."""
        try:
            with self._connection() as conn:
                conn.execute("SELECT 1")
            return True
        except StoreError:
            return False
