#!/usr/bin/env python3
"""
Convenience wrapper around Alembic using the project's migration config.

Usage:
    python migrate.py current                     # Show current migration
    python migrate.py upgrade head                # Apply all migrations
    python migrate.py downgrade -1                # Downgrade one migration
    python migrate.py revision -m "Description"   # Create new migration (--autogenerate is automatic)
    python migrate.py history                     # Show migration history
"""

import sys
from pathlib import Path

from alembic.config import main as alembic_main
from dotenv import load_dotenv

load_dotenv(override=True)

CONFIG_PATH = Path(__file__).parent / "migrations" / "alembic.ini"


def build_argv(args: list[str]) -> list[str]:
    """Alembic arguments for ``args``; ``revision`` always autogenerates from the models."""
    args = list(args)
    if args and args[0] == "revision" and "--autogenerate" not in args:
        args.insert(1, "--autogenerate")
    return ["-c", str(CONFIG_PATH), *args]


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    alembic_main(argv=build_argv(sys.argv[1:]), prog="migrate.py")
