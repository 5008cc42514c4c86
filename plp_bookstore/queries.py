# queries.py - the bookstore assignment tasks, run against a BookQueryFacade
import logging

from plp_bookstore import pipelines
from plp_bookstore.errors import BookstoreError
from plp_bookstore.facade import BookQueryFacade, IndexStatus

logger = logging.getLogger(__name__)


MISSING = "undefined"


class _Fields(dict):
    # Documents may lack any field; show it as missing instead of failing
    def __missing__(self, key):
        return MISSING


def _print_books(books, fmt="   - \"{title}\" by {author} ({published_year})"):
    for book in books:
        print(fmt.format_map(_Fields(book)))


def _money(value) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"${value:.2f}"
    return MISSING


def _decade(value) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{int(value)}s"
    return MISSING


def basic_crud_operations(books: BookQueryFacade) -> bool:
    print("\n=== TASK 2: BASIC CRUD OPERATIONS ===\n")
    try:
        print("1. Finding all Fiction books:")
        _print_books(books.find_by_filter({"genre": "Fiction"}))

        print("\n2. Finding books published after 1950:")
        _print_books(books.find_by_filter({"published_year": {"$gt": 1950}}))

        print("\n3. Finding books by George Orwell:")
        _print_books(
            books.find_by_filter({"author": "George Orwell"}),
            "   - \"{title}\" ({published_year}) - ${price}",
        )

        print('\n4. Updating price of "The Great Gatsby":')
        modified = books.update_one_price("The Great Gatsby", 15.99)
        print(f"   Updated {modified} document(s)")
        updated = books.find_one_by_title("The Great Gatsby")
        if updated:
            print(f"   New price: ${updated.price}")
        else:
            print('   "The Great Gatsby" not found')

        print('\n5. Deleting "Moby Dick":')
        deleted = books.delete_one_by_title("Moby Dick")
        print(f"   Deleted {deleted} document(s)")
    except BookstoreError as e:
        print(f"❌ Error in basic CRUD operations: {e}")
        return False
    return True


def advanced_queries(books: BookQueryFacade) -> bool:
    print("\n=== TASK 3: ADVANCED QUERIES ===\n")
    try:
        print("1. Books in stock AND published after 2010:")
        recent = list(books.find_by_filter({"in_stock": True, "published_year": {"$gt": 2010}}))
        if not recent:
            print("   No books found matching criteria")
        _print_books(recent)

        print("\n2. Books with projection (title, author, price only):")
        _print_books(
            books.find_by_filter({}, projection={"title": 1, "author": 1, "price": 1, "_id": 0}, limit=5),
            "   - \"{title}\" by {author} - ${price}",
        )

        print("\n3. Books sorted by price (ascending):")
        _print_books(books.find_by_filter({}, sort={"price": 1}, limit=5), "   - \"{title}\" - ${price}")

        print("\n4. Books sorted by price (descending):")
        _print_books(books.find_by_filter({}, sort={"price": -1}, limit=5), "   - \"{title}\" - ${price}")

        for page in (1, 2):
            print(f"\n5. Pagination - Page {page} (5 books per page):")
            rows = books.find_by_filter({}, skip=(page - 1) * 5, limit=5)
            for index, book in enumerate(rows, start=1):
                print("   {index}. \"{title}\" by {author}".format_map(_Fields(book, index=index)))
    except BookstoreError as e:
        print(f"❌ Error in advanced queries: {e}")
        return False
    return True


def aggregation_pipelines(books: BookQueryFacade) -> bool:
    print("\n=== TASK 4: AGGREGATION PIPELINES ===\n")
    try:
        print("1. Average price by genre:")
        for genre in books.aggregate(pipelines.average_price_by_genre()):
            print(f"   {genre.get('_id', MISSING)}: {_money(genre.get('averagePrice'))} ({genre.get('count', 0)} books)")

        print("\n2. Author with the most books:")
        top = list(books.aggregate(pipelines.author_with_most_books()))
        if top:
            author = top[0]
            print(f"   {author.get('_id', MISSING)}: {author.get('bookCount', 0)} books")
            print(f"   Books: {', '.join(str(title) for title in author.get('books', []))}")

        print("\n3. Books grouped by publication decade:")
        for decade in books.aggregate(pipelines.books_by_decade()):
            print(f"   {_decade(decade.get('_id'))}: {decade.get('count', 0)} books")
            for book in decade.get("books", []):
                print("     - \"{title}\" by {author} ({year})".format_map(_Fields(book)))
    except BookstoreError as e:
        print(f"❌ Error in aggregation pipelines: {e}")
        return False
    return True


def _ensure_index(books: BookQueryFacade, keys: dict, label: str) -> None:
    try:
        status = books.ensure_index(keys)
    except BookstoreError as e:
        print(f"   Error creating {label}: {e}")
        return
    if status is IndexStatus.ALREADY_EXISTS:
        print(f"   ✓ {label} already exists")
    else:
        print(f"   ✓ {label} created")


def _print_explain(books: BookQueryFacade, filter: dict) -> None:
    stats = books.explain(filter)
    print(f"   - Execution time: {stats.execution_time_millis}ms")
    print(f"   - Documents examined: {stats.total_docs_examined}")
    print(f"   - Documents returned: {stats.total_docs_returned}")
    print(f"   - Index used: {stats.index_name or 'none (collection scan)'}")


def indexing_operations(books: BookQueryFacade) -> bool:
    print("\n=== TASK 5: INDEXING ===\n")
    print("1. Creating index on title field:")
    _ensure_index(books, {"title": 1}, "Index on title field")

    print("\n2. Creating compound index on author and published_year:")
    _ensure_index(books, {"author": 1, "published_year": 1}, "Compound index on author and published_year")

    try:
        print("\n3. Performance analysis with explain():")
        print("\n   Query on genre field (no index):")
        _print_explain(books, {"genre": "Fiction"})

        print("\n   Query on title field (with index):")
        _print_explain(books, {"title": "The Great Gatsby"})

        print("\n   Query using compound index (author + published_year):")
        _print_explain(books, {"author": "George Orwell", "published_year": {"$gt": 1940}})

        print("\n4. Current indexes on the collection:")
        for i, (name, key) in enumerate(books.list_indexes(), start=1):
            print(f"   {i}. {name}: {key}")
    except BookstoreError as e:
        print(f"❌ Error in indexing operations: {e}")
        return False
    return True


TASKS = {
    "crud": basic_crud_operations,
    "advanced": advanced_queries,
    "aggregate": aggregation_pipelines,
    "indexes": indexing_operations,
}


def run_all_queries(books: BookQueryFacade, tasks=None) -> bool:
    """Run the named tasks (all of them by default) in order.

    A failing task is reported and the remaining tasks still run. Returns
    True only if every task succeeded.
    """
    names = list(tasks or TASKS)
    print("🚀 Starting MongoDB Queries for the PLP Bookstore assignment")
    print("=" * 60)
    results = [TASKS[name](books) for name in names]
    print("\n" + "=" * 60)
    if all(results):
        print("✅ All MongoDB queries completed successfully!")
    else:
        failed = [name for name, ok in zip(names, results) if not ok]
        logger.warning("Tasks with errors: %s", ", ".join(failed))
        print(f"⚠️ Completed with errors in: {', '.join(failed)}")
    return all(results)
