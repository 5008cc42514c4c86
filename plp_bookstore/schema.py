# schema.py

books_schema = {
    "bsonType": "object",
    "required": ["title", "author", "genre", "published_year", "price", "pages", "in_stock"],
    "properties": {
        "title": {"bsonType": "string"},
        "author": {"bsonType": "string"},
        "genre": {"bsonType": "string"},
        "published_year": {"bsonType": "int"},
        "price": {"bsonType": ["double", "int", "decimal"], "minimum": 0},
        "pages": {"bsonType": "int", "minimum": 0},
        "in_stock": {"bsonType": "bool"},
        "publisher": {"bsonType": ["string", "null"]}
    }
}
