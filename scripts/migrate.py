"""Apply or create database migrations."""

import argparse
import sys

from alembic import command
from alembic.config import Config


def run_migrations(revision: str) -> None:
    """Upgrade the database to ``revision``."""
    alembic_cfg = Config("alembic.ini")

    try:
        print(f"Upgrading database to {revision}...")
        command.upgrade(alembic_cfg, revision)
        print("✓ Migrations completed successfully!")
    except Exception as e:
        print(f"✗ Migration failed: {e}", file=sys.stderr)
        sys.exit(1)


def create_migration(message: str) -> None:
    """Autogenerate a migration from the table definitions in ``app.models``."""
    alembic_cfg = Config("alembic.ini")

    try:
        print(f"Creating migration: {message}")
        command.revision(alembic_cfg, message=message, autogenerate=True)
        print("✓ Migration created successfully!")
    except Exception as e:
        print(f"✗ Migration creation failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    subparsers = parser.add_subparsers(dest="command")
    upgrade_parser = subparsers.add_parser("upgrade", help="apply migrations (default)")
    upgrade_parser.add_argument("revision", nargs="?", default="head")
    create_parser = subparsers.add_parser("create", help="autogenerate a new migration")
    create_parser.add_argument("message", nargs="+")
    args = parser.parse_args()

    if args.command == "create":
        create_migration(" ".join(args.message))
    else:
        run_migrations(getattr(args, "revision", "head"))
