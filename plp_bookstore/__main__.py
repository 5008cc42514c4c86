"""Command line entry point.

Usage:
    python -m plp_bookstore                # run every task
    python -m plp_bookstore setup seed     # create the collection, load sample data
    python -m plp_bookstore crud indexes -v

Connection settings come from the environment (or a .env file):
MONGODB_URI (required), DB_NAME, COLLECTION_NAME.
"""
from __future__ import annotations

import argparse
import logging
import sys

from plp_bookstore.connect_db import load_settings
from plp_bookstore.create_collections import create_collections
from plp_bookstore.errors import BookstoreError, ConfigurationError, ConnectError
from plp_bookstore.facade import BookQueryFacade
from plp_bookstore.insert_books import insert_books
from plp_bookstore.queries import TASKS, run_all_queries

COMMANDS = ("all", "setup", "seed") + tuple(TASKS)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Run the PLP Bookstore MongoDB tasks",
    )
    parser.add_argument(
        "commands",
        nargs="*",
        metavar="COMMAND",
        help="What to run, in order: %s (default: all)" % ", ".join(COMMANDS),
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log every database operation",
    )
    args = parser.parse_args(argv)
    commands = args.commands or ["all"]
    unknown = [c for c in commands if c not in COMMANDS]
    if unknown:
        parser.error("unknown command(s): " + ", ".join(unknown))

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1

    print(f"DB_NAME: {settings.db_name}")
    print(f"COLLECTION_NAME: {settings.collection_name}")

    try:
        books = BookQueryFacade.from_settings(settings)
    except ConnectError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    ok = True
    with books:
        print("Connected to MongoDB")
        tasks = []
        for command in commands:
            if command == "setup":
                ok = create_collections(books.database, settings.collection_name) and ok
            elif command == "seed":
                try:
                    print(f"✅ Inserted {len(insert_books(books))} books")
                except BookstoreError as e:
                    print(f"❌ Failed to insert sample books: {e}")
                    ok = False
            elif command == "all":
                tasks.extend(TASKS)
            else:
                tasks.append(command)
        if tasks:
            ok = run_all_queries(books, tasks) and ok
    print("🔌 MongoDB connection closed")
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
