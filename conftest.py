import pytest
from fastapi.testclient import TestClient

from book_lending.api import create_app
from book_lending.library import Library
from book_lending.store import BookStore


@pytest.fixture
def store(tmp_path):
    # tmp_path is unique per test, so every test gets a fresh database file
    db_file = str(tmp_path / "library_test.db")
    return BookStore(db_file=db_file)


@pytest.fixture
def lib(store):
    return Library(store)


@pytest.fixture
def client(lib):
    return TestClient(create_app(lib))


@pytest.fixture
def dune():
    return {
        "title": "Dune",
        "author": "Frank Herbert",
        "genre": "SciFi",
        "publicationDate": "1965-06-01",
    }
