"""Client-side check of documents against the collection's $jsonSchema.

The server enforces `schema.books_schema` once `create_collections` has run;
checking the same schema locally gives a clear error before the round trip
and also covers databases where the validator was never installed.
"""
import jsonschema
from jsonschema import FormatChecker

from plp_bookstore import schema as bookstore_schema

_BSON_TO_JSON_TYPES = {
    "string": "string",
    "int": "integer",
    "long": "integer",
    "double": "number",
    "decimal": "number",
    "bool": "boolean",
    "null": "null",
    "object": "object",
    "array": "array",
}

_JSON_SCHEMA_CACHE: dict = {}


def bson_to_jsonschema(bson_schema: dict) -> dict:
    props = {}
    for key, prop in bson_schema.get("properties", {}).items():
        bsonType = prop.get("bsonType")
        types = bsonType if isinstance(bsonType, list) else [bsonType]
        json_types = []
        prop_schema: dict = {}
        for t in types:
            if t == "date":
                json_types.append("string")
                prop_schema["format"] = "date"
                continue
            json_type = _BSON_TO_JSON_TYPES.get(t, "string")
            if json_type not in json_types:
                json_types.append(json_type)
        # "integer" is already a subset of "number"
        if "number" in json_types and "integer" in json_types:
            json_types.remove("integer")
        prop_schema["type"] = json_types[0] if len(json_types) == 1 else json_types
        for bound in ("minimum", "maximum"):
            if bound in prop:
                prop_schema[bound] = prop[bound]
        props[key] = prop_schema

    json_schema = {"type": "object", "properties": props}
    if "required" in bson_schema:
        json_schema["required"] = bson_schema["required"]
    return json_schema


def books_jsonschema() -> dict:
    if "books_schema" not in _JSON_SCHEMA_CACHE:
        _JSON_SCHEMA_CACHE["books_schema"] = bson_to_jsonschema(bookstore_schema.books_schema)
    return _JSON_SCHEMA_CACHE["books_schema"]


def validate_book_document(doc: dict) -> None:
    """Raise jsonschema.ValidationError if `doc` breaks the books schema."""
    jsonschema.validate(instance=doc, schema=books_jsonschema(), format_checker=FormatChecker())
