"""plp_bookstore package initializer

A thin query façade over the `books` collection of the PLP Bookstore
assignment database, plus the console runner that replays the assignment
tasks (CRUD, advanced queries, aggregation pipelines, indexing).

Keep this file minimal; import the modules directly for anything beyond the
names re-exported below.
"""

from plp_bookstore.errors import (
    BookstoreError,
    ConfigurationError,
    ConnectError,
    QueryTimeoutError,
    ReadError,
    WriteError,
)
from plp_bookstore.facade import BookQueryFacade, ExplainStats, IndexStatus
from plp_bookstore.models import Book

__all__ = [
    "Book",
    "BookQueryFacade",
    "BookstoreError",
    "ConfigurationError",
    "ConnectError",
    "ExplainStats",
    "IndexStatus",
    "QueryTimeoutError",
    "ReadError",
    "WriteError",
    "connect_db",
    "create_collections",
    "insert_books",
    "pipelines",
    "queries",
    "schema",
]
