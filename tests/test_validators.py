import pytest

from book_lending.book import parse_date
from book_lending.validators import BookValidator, ObjectIdValidator


def _payload(**overrides):
    data = {
        "title": "Dune",
        "author": "Frank Herbert",
        "genre": "SciFi",
        "publicationDate": "1965-06-01",
    }
    data.update(overrides)
    return data


def test_valid_create_payload():
    assert BookValidator.validate_create(_payload()) is None
    assert BookValidator.validate_create(_payload(edition="2nd", summary="Spice.")) is None


@pytest.mark.parametrize("field", ["title", "author", "genre"])
@pytest.mark.parametrize("value", [None, "", "ab", "  ab  ", 123])
def test_create_rejects_short_or_missing_text(field, value):
    reason = BookValidator.validate_create(_payload(**{field: value}))
    assert reason == f"{field.capitalize()} is required and should be at least 3 characters long."


@pytest.mark.parametrize("value", [None, "", "not a date", "1965-13-01", 1965])
def test_create_rejects_bad_publication_date(value):
    assert BookValidator.validate_create(_payload(publicationDate=value)) == "A valid publication date is required."


def test_create_rejects_blank_edition():
    assert BookValidator.validate_create(_payload(edition="   ")) == "Edition must be a valid string."
    assert BookValidator.validate_create(_payload(edition=2)) == "Edition must be a valid string."


def test_create_summary_length_is_untrimmed():
    assert BookValidator.validate_create(_payload(summary="x" * 1000)) is None
    assert BookValidator.validate_create(_payload(summary=" " * 1001)) == "Summary should not exceed 1000 characters."


def test_create_reports_first_failure_only():
    reason = BookValidator.validate_create({"title": "ab", "author": "", "genre": ""})
    assert reason.startswith("Title")
    reason = BookValidator.validate_create(_payload(publicationDate="nope", summary="x" * 2000))
    assert reason == "A valid publication date is required."


def test_update_skips_absent_and_falsy_fields():
    assert BookValidator.validate_update({}) is None
    assert BookValidator.validate_update({"title": "", "summary": ""}) is None


def test_update_checks_supplied_fields_in_order():
    assert BookValidator.validate_update({"title": "ab"}) == "Title must be at least 3 characters long"
    assert BookValidator.validate_update({"genre": "x", "publicationDate": "bad"}) == (
        "Genre must be at least 3 characters long"
    )
    assert BookValidator.validate_update({"publicationDate": "bad"}) == "A valid publication date is required"
    assert BookValidator.validate_update({"edition": "  "}) == "Edition must be a valid string"
    assert BookValidator.validate_update({"summary": "x" * 1001}) == "Summary should not exceed 1000 characters"


def test_borrow_validation():
    assert BookValidator.validate_borrow({}) is None
    assert BookValidator.validate_borrow({"borrowedBy": "Paul", "returnDate": "2024-01-31"}) is None
    assert BookValidator.validate_borrow({"borrowedBy": 42}) == "Borrower name must be a valid string."
    assert BookValidator.validate_borrow({"returnDate": "soon"}) == "Return date must be a valid date."


@pytest.mark.parametrize("value,expected", [
    ("64b7f0c2a1b2c3d4e5f60718", True),
    ("64B7F0C2A1B2C3D4E5F60718", True),
    ("64b7f0c2a1b2c3d4e5f6071", False),
    ("64b7f0c2a1b2c3d4e5f607189", False),
    ("zzzzzzzzzzzzzzzzzzzzzzzz", False),
    ("not-an-id", False),
    ("", False),
    (None, False),
])
def test_object_id_validator(value, expected):
    assert ObjectIdValidator.is_valid(value) is expected


def test_parse_date_formats():
    assert parse_date("1965-06-01").isoformat() == "1965-06-01T00:00:00+00:00"
    assert parse_date("2024-02-03T10:20:30Z").isoformat() == "2024-02-03T10:20:30+00:00"
    assert parse_date("2024-02-03T12:00:00+02:00").isoformat() == "2024-02-03T10:00:00+00:00"
    assert parse_date("  ") is None
    assert parse_date("June 1965") is None


@pytest.mark.parametrize("value", ["9999-12-31T23:00:00-05:00", "0001-01-01T00:00:00+05:00"])
def test_parse_date_out_of_range_after_utc_shift(value):
    assert parse_date(value) is None
    assert BookValidator.validate_create(_payload(publicationDate=value)) == "A valid publication date is required."
