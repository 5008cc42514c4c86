"""Error taxonomy for the bookstore façade.

Driver exceptions are translated into these at the façade boundary so callers
can tell a bad filter from a dead connection without importing pymongo.
"""
from typing import Optional


class BookstoreError(Exception):
    """Base class; carries the failing operation and target collection."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        collection: Optional[str] = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.collection = collection

    def __str__(self) -> str:
        message = super().__str__()
        if self.operation and self.collection:
            return f"{self.operation} on '{self.collection}': {message}"
        if self.operation:
            return f"{self.operation}: {message}"
        return message


class ConfigurationError(BookstoreError):
    """Missing or invalid settings. Fatal for the console runner."""


class ConnectError(BookstoreError, ConnectionError):
    """Server unreachable, malformed URI, auth failure, or façade closed."""


class WriteError(BookstoreError):
    """Insert/update/delete/index creation rejected."""


class ReadError(BookstoreError):
    """Malformed filter or pipeline, or any other failed read."""


class QueryTimeoutError(BookstoreError, TimeoutError):
    pass
