#!/usr/bin/env python3
"""
Operator commands for the Gmail metadata mirror.

Usage:
    python manage.py create-tables            # Create tables directly (development databases only)
    python manage.py list-users               # List active users
    python manage.py sync --email ADDRESS     # Run one inbox sync for a user outside of HTTP
    python manage.py purge-user --email ADDRESS  # Hard delete a user and all of its messages

Environment Variables:
    DATABASE_HOST, DATABASE_NAME: PostgreSQL connection
    GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URI: needed by sync when a refresh is due
"""

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

load_dotenv(override=True)
from fastapi_async_sqlalchemy import db  # noqa: E402

from app.container import ApplicationContainer, close_container  # noqa: E402
from app.db import fastapi_sqlalchemy_context  # noqa: E402
from app.exceptions import BaseError  # noqa: E402
from app.models import Base, User  # noqa: E402
from logging_config import setup_logging  # noqa: E402
from settings import settings  # noqa: E402

setup_logging()

logger = logging.getLogger(__name__)

# Global container instance
container = ApplicationContainer()


async def create_tables() -> None:
    async with fastapi_sqlalchemy_context():
        connection = await db.session.connection()
        await connection.run_sync(Base.metadata.create_all)
        await db.session.commit()
    logger.info("Tables created")


async def list_users() -> None:
    async with fastapi_sqlalchemy_context():
        users = await container.repos.user().get_all_active()

        if not users:
            logger.info("No active users found in database.")
            return

        logger.info(f"Found {len(users)} active users:")
        logger.info("-" * 80)
        for i, user in enumerate(users, 1):
            expiry = user.token_expiry.isoformat() if user.token_expiry else "-"
            logger.info(f"{i:3d}. {user.email:40} refresh_token={'yes' if user.refresh_token else 'no':3} {expiry}")
        logger.info("-" * 80)


async def _require_user(email: str) -> User | None:
    user = await container.repos.user().get_by_email(email)
    if user is None:
        logger.error(f"No user with email {email}")
    return user


async def sync_user(email: str, max_results: int) -> bool:
    async with fastapi_sqlalchemy_context(commit_on_exit=True):
        user = await _require_user(email)
        if user is None or not user.is_active:
            return False

        try:
            result = await container.controllers.sync_controller().sync(user, max_results=max_results)
        except BaseError as e:
            logger.error(f"Sync failed for {email}; {e}")
            return False
        finally:
            await close_container(container)

        logger.info(
            f"Synced {result.synced_count} emails for {email} "
            f"(failed: {result.failed_count}, next page: {result.next_page_token or '-'})"
        )
        return True


async def purge_user(email: str) -> bool:
    async with fastapi_sqlalchemy_context(commit_on_exit=True):
        user = await _require_user(email)
        if user is None:
            return False

        try:
            removed = await container.controllers.user_controller().purge(user)
        finally:
            await close_container(container)

        logger.info(f"Purged {email} and {removed} emails")
        return True


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Gmail metadata mirror operator commands")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("create-tables", help="Create all tables from the models")
    subparsers.add_parser("list-users", help="List active users")

    sync_parser = subparsers.add_parser("sync", help="Sync one page of a user's inbox")
    sync_parser.add_argument("--email", required=True)
    sync_parser.add_argument("--max-results", type=int, default=settings.sync.default_page_size)

    purge_parser = subparsers.add_parser("purge-user", help="Hard delete a user and its emails")
    purge_parser.add_argument("--email", required=True)

    args = parser.parse_args()

    try:
        ok = True
        if args.command == "create-tables":
            asyncio.run(create_tables())
        elif args.command == "list-users":
            asyncio.run(list_users())
        elif args.command == "sync":
            ok = asyncio.run(sync_user(args.email, args.max_results))
        elif args.command == "purge-user":
            ok = asyncio.run(purge_user(args.email))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception:
        logger.exception("Command failed")
        sys.exit(1)

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
