from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum


class AvailabilityStatus(str, Enum):
    """Whether a book can currently be borrowed."""
    AVAILABLE = "Available"
    BORROWED = "Borrowed"


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_date(value) -> datetime | None:
    """Parse an ISO-8601 date or timestamp into an aware UTC datetime.

    Returns ``None`` when the value is not a date. Naive values are taken
    to be UTC and a trailing ``Z`` is accepted.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        # Offset pushes the instant outside years 1..9999
        return None


class BorrowRecord:
    """One loan of a book: who borrowed it, when, and when it came back."""

    def __init__(self, borrowed_by: str = "Unknown", borrowed_date: str | None = None,
                 return_date: str | None = None, due_date: str | None = None) -> None:
        self.borrowed_by = borrowed_by
        self.borrowed_date = borrowed_date or utcnow_iso()
        self.return_date = return_date
        self.due_date = due_date

    @property
    def is_open(self) -> bool:
        return self.return_date is None

    def to_dict(self) -> dict:
        return {
            "borrowedBy": self.borrowed_by,
            "borrowedDate": self.borrowed_date,
            "returnDate": self.return_date,
            "dueDate": self.due_date,
        }

    @staticmethod
    def from_dict(data: dict) -> "BorrowRecord":
        return BorrowRecord(
            borrowed_by=data.get("borrowedBy") or "Unknown",
            borrowed_date=data.get("borrowedDate"),
            return_date=data.get("returnDate"),
            due_date=data.get("dueDate"),
        )


class Book:
    """Represents a single book record in the lending library."""

    def __init__(self, title: str, author: str, genre: str, publication_date: str,
                 edition: str | None = None, summary: str = "",
                 availability_status: AvailabilityStatus = AvailabilityStatus.AVAILABLE,
                 borrowing_history: list[BorrowRecord] | None = None,
                 id: str | None = None, created_at: str | None = None,
                 updated_at: str | None = None, version: int = 0) -> None:
        self.id = id
        self.title = title.strip()
        self.author = author.strip()
        self.genre = genre.strip()
        self.publication_date = publication_date
        self.edition = edition.strip() if edition and edition.strip() else None
        self.summary = summary or ""
        self.availability_status = AvailabilityStatus(availability_status)
        self.borrowing_history = borrowing_history or []
        self.created_at = created_at
        self.updated_at = updated_at
        self.version = version

    @property
    def last_borrowing(self) -> BorrowRecord | None:
        return self.borrowing_history[-1] if self.borrowing_history else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "genre": self.genre,
            "publicationDate": self.publication_date,
            "edition": self.edition,
            "summary": self.summary,
            "availabilityStatus": self.availability_status.value,
            "borrowingHistory": [record.to_dict() for record in self.borrowing_history],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            id=data.get("id"),
            title=data["title"],
            author=data["author"],
            genre=data["genre"],
            publication_date=data["publicationDate"],
            edition=data.get("edition"),
            summary=data.get("summary") or "",
            availability_status=data.get("availabilityStatus") or AvailabilityStatus.AVAILABLE,
            borrowing_history=[BorrowRecord.from_dict(r) for r in data.get("borrowingHistory") or []],
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
            version=data.get("version", 0),
        )
