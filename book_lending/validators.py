import re
from typing import Any, Mapping, Optional

from book_lending.book import parse_date

MIN_TEXT_LENGTH = 3
MAX_SUMMARY_LENGTH = 1000

_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


class ObjectIdValidator:
    """Identifiers are 24 hexadecimal characters, as issued by the store."""

    @staticmethod
    def is_valid(value: Any) -> bool:
        return isinstance(value, str) and bool(_OBJECT_ID_RE.match(value))


def _is_short_text(value: Any) -> bool:
    return not isinstance(value, str) or len(value.strip()) < MIN_TEXT_LENGTH


def _is_blank_text(value: Any) -> bool:
    return not isinstance(value, str) or len(value.strip()) < 1


def _is_long_summary(value: Any) -> bool:
    return not isinstance(value, str) or len(value) > MAX_SUMMARY_LENGTH


class BookValidator:
    """Field checks for book payloads.

    Each method returns the first failure message, or ``None`` when the
    payload is acceptable. Fields are checked in a fixed order: title,
    author, genre, publicationDate, edition, summary.
    """

    @staticmethod
    def validate_create(data: Mapping[str, Any]) -> Optional[str]:
        title = data.get("title")
        author = data.get("author")
        genre = data.get("genre")
        publication_date = data.get("publicationDate")
        edition = data.get("edition")
        summary = data.get("summary")

        if not title or _is_short_text(title):
            return "Title is required and should be at least 3 characters long."
        if not author or _is_short_text(author):
            return "Author is required and should be at least 3 characters long."
        if not genre or _is_short_text(genre):
            return "Genre is required and should be at least 3 characters long."
        if not publication_date or parse_date(publication_date) is None:
            return "A valid publication date is required."
        if edition and _is_blank_text(edition):
            return "Edition must be a valid string."
        if summary and _is_long_summary(summary):
            return "Summary should not exceed 1000 characters."
        return None

    @staticmethod
    def validate_update(data: Mapping[str, Any]) -> Optional[str]:
        # Falsy values count as "not supplied" and are never checked.
        title = data.get("title")
        author = data.get("author")
        genre = data.get("genre")
        publication_date = data.get("publicationDate")
        edition = data.get("edition")
        summary = data.get("summary")

        if title and _is_short_text(title):
            return "Title must be at least 3 characters long"
        if author and _is_short_text(author):
            return "Author must be at least 3 characters long"
        if genre and _is_short_text(genre):
            return "Genre must be at least 3 characters long"
        if publication_date and parse_date(publication_date) is None:
            return "A valid publication date is required"
        if edition and _is_blank_text(edition):
            return "Edition must be a valid string"
        if summary and _is_long_summary(summary):
            return "Summary should not exceed 1000 characters"
        return None

    @staticmethod
    def validate_borrow(data: Mapping[str, Any]) -> Optional[str]:
        borrowed_by = data.get("borrowedBy")
        return_date = data.get("returnDate")

        if borrowed_by and _is_blank_text(borrowed_by):
            return "Borrower name must be a valid string."
        if return_date and parse_date(return_date) is None:
            return "Return date must be a valid date."
        return None
