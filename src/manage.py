"""Shoe store database management CLI.

Creates or drops the tables of every SQL-backed provider configured for the
current PROTEAN_ENV. Memory providers are left alone.

Usage:
    PROTEAN_ENV=production python src/manage.py setup-db   # Create all tables
    PROTEAN_ENV=production python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_databases():
    """Create database schemas for the shoestore domain."""
    from shoestore.domain import load_elements, shoestore
    from shoestore.utils.db import setup_db

    print("Initializing shoestore domain...")
    load_elements()
    shoestore.init()
    print("Creating database schema...")
    touched = setup_db(shoestore)
    if touched:
        print(f"  Schema ready for provider(s): {', '.join(touched)}.")
    else:
        print("  No SQL providers configured; nothing to create.")

    print("Done.")


def drop_databases():
    """Drop database schemas for the shoestore domain."""
    from shoestore.domain import load_elements, shoestore
    from shoestore.utils.db import drop_db

    print("Initializing shoestore domain...")
    load_elements()
    shoestore.init()
    print("Dropping database schema...")
    touched = drop_db(shoestore)
    if touched:
        print(f"  Schema dropped for provider(s): {', '.join(touched)}.")
    else:
        print("  No SQL providers configured; nothing to drop.")

    print("Done.")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Shoe store database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
