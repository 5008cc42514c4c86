"""Typed façade over the books collection.

`BookQueryFacade` owns one `MongoClient` and one collection handle. Filters,
projections and pipelines are plain dicts/lists handed to pymongo verbatim;
the façade only shapes requests, translates driver errors into
`plp_bookstore.errors`, and guarantees the client is closed.

Typical use::

    with BookQueryFacade.connect(uri, "plp_bookstore") as books:
        books.update_one_price("The Great Gatsby", 15.99)
        for book in books.find_books({"genre": "Fiction"}):
            print(book.title)
"""
import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Type, Union

import jsonschema
import pymongo
from bson.decimal128 import Decimal128
from bson.errors import BSONError
from pydantic import ValidationError
from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, OperationFailure, PyMongoError

from plp_bookstore.connect_db import DEFAULT_COLLECTION_NAME, open_client
from plp_bookstore.errors import BookstoreError, ConnectError, QueryTimeoutError, ReadError, WriteError
from plp_bookstore.models import Book
from plp_bookstore.validation import validate_book_document

logger = logging.getLogger(__name__)

# Server codes for "an index on these keys already exists"
INDEX_OPTIONS_CONFLICT = 85
INDEX_KEY_SPECS_CONFLICT = 86
INDEX_CONFLICT_CODES = frozenset({INDEX_OPTIONS_CONFLICT, INDEX_KEY_SPECS_CONFLICT})

SortSpec = Union[Mapping[str, int], Sequence[Tuple[str, int]]]
KeySpec = Union[str, Mapping[str, Any], Sequence[Tuple[str, Any]]]


class IndexStatus(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


@dataclass(frozen=True)
class ExplainStats:
    execution_time_millis: int
    total_docs_examined: int
    total_docs_returned: int
    index_name: Optional[str] = None

    @property
    def used_index(self) -> bool:
        return self.index_name is not None


def _normalize_keys(keys: KeySpec) -> List[Tuple[str, Any]]:
    if isinstance(keys, str):
        return [(keys, pymongo.ASCENDING)]
    if isinstance(keys, Mapping):
        return list(keys.items())
    return [(field, direction) for field, direction in keys]


def _same_keys(info: dict, key_list: List[Tuple[str, Any]]) -> bool:
    existing = _normalize_keys(info["key"])
    if not any(direction == pymongo.TEXT for _, direction in key_list):
        return existing == key_list
    # Text indexes are stored as _fts/_ftsx with the text fields in "weights"
    if ("_fts", pymongo.TEXT) not in existing:
        return False
    text_fields = {field for field, direction in key_list if direction == pymongo.TEXT}
    other_fields = [(f, d) for f, d in key_list if d != pymongo.TEXT]
    existing_other = [(f, d) for f, d in existing if f not in ("_fts", "_ftsx")]
    return set(info.get("weights", {})) == text_fields and existing_other == other_fields


# Index options that change what an index enforces
_COMPARED_INDEX_OPTIONS = {
    "unique": False,
    "sparse": False,
    "expireAfterSeconds": None,
    "partialFilterExpression": None,
}


def _same_options(info: dict, options: Mapping[str, Any]) -> bool:
    return all(
        info.get(option, default) == options.get(option, default)
        for option, default in _COMPARED_INDEX_OPTIONS.items()
    )


def _find_index_name(plan: Optional[dict]) -> Optional[str]:
    # Winning plans nest as FETCH -> IXSCAN -> ...; the first IXSCAN names the index.
    # Slot-based engine plans wrap the tree in "queryPlan".
    while plan:
        if plan.get("indexName"):
            return plan["indexName"]
        plan = plan.get("inputStage") or plan.get("queryPlan")
    return None


def _translate(
    exc: PyMongoError,
    operation: str,
    collection: str,
    failure: Type[BookstoreError],
) -> BookstoreError:
    if exc.timeout:
        return QueryTimeoutError(f"Operation timed out: {exc}", operation, collection)
    if isinstance(exc, ConnectionFailure):
        return ConnectError(f"Lost connection to MongoDB: {exc}", operation, collection)
    return failure(str(exc), operation, collection)


class BookQueryFacade:
    """One session against one collection: open, zero or more calls, close.

    Not safe for concurrent use; open one façade per thread instead.
    """

    def __init__(
        self,
        client: MongoClient,
        db_name: str,
        collection_name: str = DEFAULT_COLLECTION_NAME,
        default_timeout: Optional[float] = None,
    ):
        self._client: Optional[MongoClient] = client
        self.db_name = db_name
        self.collection_name = collection_name
        self.default_timeout = default_timeout
        self._db = client[db_name]
        self._collection = self._db[collection_name]

    @classmethod
    def connect(
        cls,
        uri: str,
        db_name: str,
        collection_name: str = DEFAULT_COLLECTION_NAME,
        default_timeout: Optional[float] = None,
        client_factory: Callable[..., MongoClient] = MongoClient,
        **client_options,
    ) -> "BookQueryFacade":
        """Open a client, ping the server and return a façade bound to it."""
        client = open_client(uri, client_factory=client_factory, **client_options)
        logger.info("Using collection %s.%s", db_name, collection_name)
        return cls(client, db_name, collection_name, default_timeout=default_timeout)

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "BookQueryFacade":
        options = settings.client_options()
        options.update(kwargs)
        return cls.connect(
            settings.mongodb_uri,
            settings.db_name,
            settings.collection_name,
            default_timeout=settings.operation_timeout,
            **options,
        )

    @property
    def closed(self) -> bool:
        return self._client is None

    @property
    def database(self):
        return self._db

    def close(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        client.close()
        logger.info("MongoDB connection closed")

    def __enter__(self) -> "BookQueryFacade":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_open(self, name: str) -> None:
        if self._client is None:
            raise ConnectError("Session is closed", name, self.collection_name)

    @contextmanager
    def _operation(
        self,
        name: str,
        timeout: Optional[float] = None,
        failure: Type[BookstoreError] = ReadError,
    ):
        self._require_open(name)
        seconds = timeout if timeout is not None else self.default_timeout
        logger.debug("%s on %s (timeout=%s)", name, self.collection_name, seconds)
        try:
            with pymongo.timeout(seconds):
                yield self._collection
        except PyMongoError as e:
            error = _translate(e, name, self.collection_name, failure)
            logger.warning("%s", error)
            raise error from e
        except BSONError as e:
            # unencodable filter or document
            raise failure(f"Invalid document: {e}", name, self.collection_name) from e

    # ---- writes -------------------------------------------------------

    def _prepare(self, book: Union[Book, Mapping[str, Any]], operation: str) -> dict:
        doc = book.to_document() if isinstance(book, Book) else dict(book)
        try:
            validate_book_document(doc)
        except jsonschema.ValidationError as e:
            raise WriteError(f"Schema validation error: {e.message}", operation, self.collection_name) from e
        return doc

    def insert_book(self, book: Union[Book, Mapping[str, Any]], timeout: Optional[float] = None) -> Any:
        """Insert one book and return its `_id`."""
        doc = self._prepare(book, "insert_book")
        with self._operation("insert_book", timeout, WriteError) as collection:
            result = collection.insert_one(doc)
        return result.inserted_id

    def insert_books(self, books: Iterable[Union[Book, Mapping[str, Any]]], timeout: Optional[float] = None) -> list:
        docs = [self._prepare(book, "insert_books") for book in books]
        if not docs:
            return []
        with self._operation("insert_books", timeout, WriteError) as collection:
            result = collection.insert_many(docs)
        return list(result.inserted_ids)

    def update_one_price(
        self,
        title: str,
        new_price: Union[int, float, Decimal, Decimal128],
        timeout: Optional[float] = None,
    ) -> int:
        """Set the price of the first book titled `title`.

        `Decimal` prices are stored as BSON Decimal128. Returns the modified
        count; 0 when nothing matched (or the price was already `new_price`).
        """
        price = self._coerce_price(new_price)
        with self._operation("update_one_price", timeout, WriteError) as collection:
            result = collection.update_one({"title": title}, {"$set": {"price": price}})
        return result.modified_count

    def _coerce_price(self, value):
        if isinstance(value, Decimal128):
            amount = value.to_decimal()
        elif isinstance(value, Decimal):
            amount = value
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            amount = Decimal(value) if math.isfinite(value) else None
        else:
            amount = None
        if amount is None or not amount.is_finite() or amount < 0:
            raise WriteError(f"Invalid price: {value!r}", "update_one_price", self.collection_name)
        if isinstance(value, Decimal):
            return Decimal128(value)
        return value

    def delete_one_by_title(self, title: str, timeout: Optional[float] = None) -> int:
        with self._operation("delete_one_by_title", timeout, WriteError) as collection:
            result = collection.delete_one({"title": title})
        return result.deleted_count

    def delete_all(self, timeout: Optional[float] = None) -> int:
        with self._operation("delete_all", timeout, WriteError) as collection:
            result = collection.delete_many({})
        return result.deleted_count

    # ---- reads --------------------------------------------------------

    def find_by_filter(
        self,
        filter: Optional[Mapping[str, Any]] = None,
        projection: Optional[Mapping[str, Any]] = None,
        sort: Optional[SortSpec] = None,
        skip: int = 0,
        limit: int = 0,
        timeout: Optional[float] = None,
    ) -> Iterator[dict]:
        """Lazily yield matching documents.

        Nothing is sent to the server until iteration starts, and every call
        opens a new cursor. Without `sort` documents come back in natural
        order. `skip`/`limit` of 0 disable paging.
        """
        self._require_open("find_by_filter")
        if skip < 0 or limit < 0:
            raise ReadError("skip and limit must be non-negative", "find_by_filter", self.collection_name)
        filter = dict(filter or {})

        def open_cursor(collection):
            cursor = collection.find(filter, projection)
            if sort:
                cursor = cursor.sort(_normalize_keys(sort))
            if skip:
                cursor = cursor.skip(skip)
            if limit:
                cursor = cursor.limit(limit)
            return cursor

        return self._iterate("find_by_filter", open_cursor, timeout)

    def _iterate(self, name: str, open_cursor: Callable, timeout: Optional[float]) -> Iterator[dict]:
        # The deadline is entered per batch fetch and never held across a
        # yield, so a suspended iterator leaves no timeout behind for the caller.
        with self._operation(name, timeout) as collection:
            cursor = iter(open_cursor(collection))
        while True:
            with self._operation(name, timeout):
                try:
                    doc = next(cursor)
                except StopIteration:
                    return
            yield doc

    def find_books(
        self,
        filter: Optional[Mapping[str, Any]] = None,
        sort: Optional[SortSpec] = None,
        skip: int = 0,
        limit: int = 0,
        timeout: Optional[float] = None,
    ) -> Iterator[Book]:
        docs = self.find_by_filter(filter, sort=sort, skip=skip, limit=limit, timeout=timeout)
        return (self._to_book(doc, "find_books") for doc in docs)

    def _to_book(self, doc: dict, operation: str) -> Book:
        try:
            return Book.model_validate(doc)
        except ValidationError as e:
            raise ReadError(f"Stored document is not a valid book: {e}", operation, self.collection_name) from e

    def find_one_by_title(self, title: str, timeout: Optional[float] = None) -> Optional[Book]:
        with self._operation("find_one_by_title", timeout) as collection:
            doc = collection.find_one({"title": title})
        return self._to_book(doc, "find_one_by_title") if doc else None

    def aggregate(self, pipeline: Sequence[Mapping[str, Any]], timeout: Optional[float] = None) -> Iterator[dict]:
        """Lazily yield the results of `pipeline`; stages are passed as given."""
        self._require_open("aggregate")
        stages = list(pipeline)
        return self._iterate("aggregate", lambda collection: collection.aggregate(stages), timeout)

    # ---- indexes ------------------------------------------------------

    def ensure_index(self, keys: KeySpec, timeout: Optional[float] = None, **options) -> IndexStatus:
        """Create an index unless one with the same keys is already there.

        An existing index is reported as ALREADY_EXISTS, whether it is found
        up front or the server refuses with an index conflict code. An index
        on the same keys but with different `unique`/`sparse`/TTL/partial
        options is a WriteError rather than a silent match.
        """
        key_list = _normalize_keys(keys)
        with self._operation("ensure_index", timeout, WriteError) as collection:
            for name, info in collection.index_information().items():
                if not _same_keys(info, key_list):
                    continue
                if not _same_options(info, options):
                    raise WriteError(
                        f"Index {name} exists on {key_list} with different options",
                        "ensure_index",
                        self.collection_name,
                    )
                logger.debug("Index %s already covers %s", name, key_list)
                return IndexStatus.ALREADY_EXISTS
            try:
                name = collection.create_index(key_list, **options)
            except OperationFailure as e:
                if e.code in INDEX_CONFLICT_CODES:
                    logger.debug("Index on %s already exists (code %s)", key_list, e.code)
                    return IndexStatus.ALREADY_EXISTS
                raise
        logger.info("Created index %s on %s", name, self.collection_name)
        return IndexStatus.CREATED

    def list_indexes(self, timeout: Optional[float] = None) -> List[Tuple[str, dict]]:
        with self._operation("list_indexes", timeout) as collection:
            return [(index["name"], dict(index["key"])) for index in collection.list_indexes()]

    def explain(self, filter: Optional[Mapping[str, Any]] = None, timeout: Optional[float] = None) -> ExplainStats:
        """Execution statistics for `find(filter)`. Read-only."""
        with self._operation("explain", timeout) as collection:
            result = self._db.command(
                "explain",
                {"find": collection.name, "filter": dict(filter or {})},
                verbosity="executionStats",
            )
        stats = result.get("executionStats") or {}
        winning_plan = (result.get("queryPlanner") or {}).get("winningPlan")
        return ExplainStats(
            execution_time_millis=stats.get("executionTimeMillis", 0),
            total_docs_examined=stats.get("totalDocsExamined", 0),
            total_docs_returned=stats.get("nReturned", stats.get("totalDocsReturned", 0)),
            index_name=_find_index_name(winning_plan),
        )
