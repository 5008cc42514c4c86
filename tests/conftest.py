"""
Pytest configuration and shared fixtures

Behavioural tests run against an in-memory mongomock client. Server-only
features (explain, collMod, conflict codes, timeouts) are covered with
unittest.mock stand-ins built by `mock_facade`.
"""
from unittest.mock import MagicMock

import mongomock
import pytest

from plp_bookstore.facade import BookQueryFacade
from plp_bookstore.insert_books import SAMPLE_BOOKS
from plp_bookstore.models import Book


@pytest.fixture
def mongo_client():
    return mongomock.MongoClient()


@pytest.fixture
def books(mongo_client):
    facade = BookQueryFacade(mongo_client, "plp_bookstore_test", "books")
    yield facade
    facade.close()


@pytest.fixture
def seeded_books(books):
    books.insert_books(SAMPLE_BOOKS)
    return books


@pytest.fixture
def make_book():
    def _make(**overrides):
        fields = {
            "title": "Test Book",
            "author": "Test Author",
            "genre": "Fiction",
            "published_year": 2000,
            "price": 10.0,
            "pages": 100,
            "in_stock": True,
        }
        fields.update(overrides)
        return Book(**fields)

    return _make


@pytest.fixture
def mock_facade():
    """Façade over MagicMock client/db/collection; returns (facade, db, collection)."""
    client = MagicMock()
    db = client.__getitem__.return_value
    collection = db.__getitem__.return_value
    collection.name = "books"
    facade = BookQueryFacade(client, "plp_bookstore_test", "books")
    return facade, db, collection
