"""Aggregation pipelines used by the assignment tasks.

Each function returns a fresh list of stages so callers may append to it.
"""


def average_price_by_genre() -> list:
    return [
        {
            "$group": {
                "_id": "$genre",
                "averagePrice": {"$avg": "$price"},
                "count": {"$sum": 1},
            }
        },
        {"$sort": {"averagePrice": -1}},
    ]


def count_by_genre() -> list:
    return [
        {"$group": {"_id": "$genre", "count": {"$sum": 1}}},
        {"$sort": {"_id": 1}},
    ]


def author_with_most_books(limit: int = 1) -> list:
    return [
        {
            "$group": {
                "_id": "$author",
                "bookCount": {"$sum": 1},
                "books": {"$push": "$title"},
            }
        },
        {"$sort": {"bookCount": -1}},
        {"$limit": limit},
    ]


def books_by_decade() -> list:
    return [
        {
            "$addFields": {
                "decade": {
                    "$multiply": [
                        {"$floor": {"$divide": ["$published_year", 10]}},
                        10,
                    ]
                }
            }
        },
        {
            "$group": {
                "_id": "$decade",
                "count": {"$sum": 1},
                "books": {
                    "$push": {"title": "$title", "author": "$author", "year": "$published_year"}
                },
            }
        },
        {"$sort": {"_id": 1}},
    ]
