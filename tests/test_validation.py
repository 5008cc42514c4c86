"""Tests for the books $jsonSchema and its client-side check"""
import jsonschema
import pytest

from plp_bookstore.schema import books_schema
from plp_bookstore.validation import bson_to_jsonschema, books_jsonschema, validate_book_document


def _doc(**overrides):
    doc = {
        "title": "1984",
        "author": "George Orwell",
        "genre": "Dystopian",
        "published_year": 1949,
        "price": 10.99,
        "pages": 328,
        "in_stock": True,
    }
    doc.update(overrides)
    return doc


def test_conversion_maps_bson_types():
    converted = bson_to_jsonschema(books_schema)

    assert converted["required"] == books_schema["required"]
    assert converted["properties"]["published_year"] == {"type": "integer"}
    assert converted["properties"]["price"] == {"type": "number", "minimum": 0}
    assert converted["properties"]["in_stock"] == {"type": "boolean"}
    assert converted["properties"]["publisher"] == {"type": ["string", "null"]}


def test_date_fields_become_formatted_strings():
    converted = bson_to_jsonschema({"properties": {"released": {"bsonType": "date"}}})

    assert converted["properties"]["released"] == {"type": "string", "format": "date"}


def test_converted_schema_is_cached():
    assert books_jsonschema() is books_jsonschema()


def test_valid_document_passes():
    validate_book_document(_doc())
    validate_book_document(_doc(price=12, publisher=None))


@pytest.mark.parametrize("overrides", [
    {"price": -1},
    {"pages": "many"},
    {"published_year": 1949.5},
    {"in_stock": "yes"},
    {"title": 1984},
])
def test_invalid_field_is_rejected(overrides):
    with pytest.raises(jsonschema.ValidationError):
        validate_book_document(_doc(**overrides))


def test_missing_required_field_is_rejected():
    doc = _doc()
    del doc["genre"]

    with pytest.raises(jsonschema.ValidationError, match="genre"):
        validate_book_document(doc)
