import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

from book_lending.book import AvailabilityStatus, Book, BorrowRecord, parse_date, utcnow_iso
from book_lending.store import BookStore, DuplicateError, StoreError
from book_lending.validators import BookValidator, ObjectIdValidator

logger = logging.getLogger(__name__)

# Fields a client may change through update_book, in validation order.
UPDATABLE_FIELDS = ("title", "author", "genre", "publicationDate", "edition", "summary")
TRIMMED_FIELDS = ("title", "author", "genre", "edition")


class Library:
    """Book records and the borrow/return workflow on top of a ``BookStore``."""

    def __init__(self, store: Optional[BookStore] = None) -> None:
        self.store = store or BookStore()

    # ------------------------- Core operations ------------------------- #
    def add_book(self, payload: Mapping[str, Any]) -> Book:
        """Validate and insert a new book. Rejects duplicates of (title, author, edition)."""
        reason = BookValidator.validate_create(payload)
        if reason:
            raise ValidationError(reason)

        edition = payload.get("edition")
        summary = payload.get("summary")
        book = Book(
            title=payload["title"],
            author=payload["author"],
            genre=payload["genre"],
            publication_date=parse_date(payload["publicationDate"]).isoformat(),
            edition=edition,
            summary=summary.strip() if summary else "",
        )

        with self._store_errors("add book"):
            existing = self.store.find_one(title=book.title, author=book.author, edition=book.edition)
            if existing:
                logger.warning(f"Duplicate book rejected: {book.title!r} by {book.author!r}")
                self._raise_duplicate()
            try:
                self.store.create(book)
            except DuplicateError:
                # Another request inserted the same triple after our check
                self._raise_duplicate()

        logger.info(f"Book added: {book.id} {book.title!r}")
        return book

    def list_books(self) -> List[Book]:
        with self._store_errors("retrieve books"):
            return self.store.find_all()

    def get_book(self, book_id: str) -> Book:
        self._check_id(book_id)
        with self._store_errors("retrieve book"):
            return self._find_or_raise(book_id)

    def update_book(self, book_id: str, payload: Mapping[str, Any]) -> Book:
        """Apply the supplied fields to a book.

        Falsy values (empty strings and the like) are treated as not supplied
        and leave the stored value unchanged.
        """
        self._check_id(book_id)
        reason = BookValidator.validate_update(payload)
        if reason:
            raise ValidationError(reason)

        fields: Dict[str, Any] = {}
        for name in UPDATABLE_FIELDS:
            value = payload.get(name)
            if not value:
                continue
            if name in TRIMMED_FIELDS:
                value = value.strip()
            elif name == "publicationDate":
                value = parse_date(value).isoformat()
            fields[name] = value

        with self._store_errors("update book"):
            book = self._find_or_raise(book_id)
            if fields.keys() & {"title", "author", "edition"}:
                self._check_duplicate_triple(book, fields)
            try:
                updated = self.store.update_by_id(book_id, fields, expected_version=book.version)
            except DuplicateError:
                self._raise_duplicate()
            if updated is None:
                self._find_or_raise(book_id)
                self._raise_lost_update(book_id)

        logger.info(f"Book updated: {book_id} fields={sorted(fields)}")
        return updated

    def delete_book(self, book_id: str) -> Book:
        self._check_id(book_id)
        with self._store_errors("delete book"):
            book = self.store.delete_by_id(book_id)
        if book is None:
            raise NotFoundError("Book not found")
        logger.info(f"Book deleted: {book_id} {book.title!r}")
        return book

    # ------------------------- Borrow / return ------------------------- #
    def borrow_book(self, book_id: str, payload: Optional[Mapping[str, Any]] = None) -> Book:
        """Record a new loan and mark the book as borrowed.

        ``returnDate`` in the request is the expected return date; it is kept
        as the record's ``dueDate`` and the record stays open until returned.
        """
        payload = payload or {}
        self._check_id(book_id)
        reason = BookValidator.validate_borrow(payload)
        if reason:
            raise ValidationError(reason)

        due = payload.get("returnDate")
        with self._store_errors("borrow book"):
            book = self._find_or_raise(book_id)
            if book.availability_status is AvailabilityStatus.BORROWED:
                logger.warning(f"Borrow rejected, book already borrowed: {book_id}")
                raise InvalidTransitionError("Book is currently unavailable for borrowing")

            book.borrowing_history.append(BorrowRecord(
                borrowed_by=payload.get("borrowedBy") or "Unknown",
                borrowed_date=utcnow_iso(),
                due_date=parse_date(due).isoformat() if due else None,
            ))
            book.availability_status = AvailabilityStatus.BORROWED
            if not self.store.save(book):
                self._find_or_raise(book_id)
                self._raise_lost_update(book_id)

        logger.info(f"Book borrowed: {book_id} by {book.last_borrowing.borrowed_by!r}")
        return book

    def return_book(self, book_id: str) -> Book:
        """Close the latest loan and mark the book as available again."""
        self._check_id(book_id)
        with self._store_errors("return book"):
            book = self._find_or_raise(book_id)
            if book.availability_status is AvailabilityStatus.AVAILABLE:
                logger.warning(f"Return rejected, book already available: {book_id}")
                raise InvalidTransitionError("Book is already available, no need to return")

            book.availability_status = AvailabilityStatus.AVAILABLE
            last = book.last_borrowing
            if last is not None:
                last.return_date = utcnow_iso()
            if not self.store.save(book):
                self._find_or_raise(book_id)
                self._raise_lost_update(book_id)

        logger.info(f"Book returned: {book_id}")
        return book

    # ------------------------- Helpers ------------------------- #
    @staticmethod
    def _check_id(book_id: str) -> None:
        if not ObjectIdValidator.is_valid(book_id):
            raise ValidationError("Invalid book ID")

    def _find_or_raise(self, book_id: str) -> Book:
        book = self.store.find_by_id(book_id)
        if book is None:
            raise NotFoundError("Book not found")
        return book

    def _check_duplicate_triple(self, book: Book, fields: Mapping[str, Any]) -> None:
        title = fields.get("title", book.title)
        author = fields.get("author", book.author)
        edition = fields.get("edition", book.edition)
        existing = self.store.find_one(title=title, author=author, edition=edition)
        if existing and existing.id != book.id:
            logger.warning(f"Update rejected, duplicate of {existing.id}: {book.id}")
            self._raise_duplicate()

    @staticmethod
    def _raise_duplicate() -> None:
        raise ConflictError("This book (with the same title, author, and edition) has already been added.")

    @staticmethod
    def _raise_lost_update(book_id: str) -> None:
        logger.warning(f"Concurrent modification detected: {book_id}")
        raise ConflictError("Book was modified by another request, please retry.")

    @staticmethod
    @contextmanager
    def _store_errors(action: str) -> Iterator[None]:
        try:
            yield
        except StoreError as e:
            logger.error(f"Failed to {action}: {e}")
            raise OperationError(f"Failed to {action}, {e}") from e


class LibraryError(Exception):
    """Base class for failures reported to clients as ``{"message": ...}``."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(LibraryError, ValueError):
    status_code = 400


class ConflictError(LibraryError):
    status_code = 409


class InvalidTransitionError(ConflictError):
    """Borrowing a borrowed book or returning an available one."""
    status_code = 400


class NotFoundError(LibraryError, LookupError):
    status_code = 404


class OperationError(LibraryError):
    status_code = 500
