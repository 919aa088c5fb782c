import os

# Must be set before anything imports ``settings``.
os.environ["MAILMIRROR_ENV"] = "test"

from collections.abc import AsyncIterator, Callable  # noqa: E402
from contextlib import AbstractAsyncContextManager  # noqa: E402
from typing import Any  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.controllers.google.gmail_client import GmailClient  # noqa: E402
from app.controllers.google.http import GoogleHttpClient  # noqa: E402
from app.controllers.google.oauth_client import GoogleOAuthClient  # noqa: E402
from app.db import fastapi_sqlalchemy_context  # noqa: E402
from app.models import Base  # noqa: E402


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """In-memory SQLite engine with the schema created. One shared connection, so every session sees the data."""
    engine = create_async_engine(
        "sqlite+aiosqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False}
    )

    # Let SQLAlchemy, not the sqlite3 driver, emit BEGIN so SAVEPOINTs work.
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(connection: Any) -> None:
        connection.exec_driver_sql("BEGIN")

    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def database(engine: AsyncEngine) -> Callable[..., AbstractAsyncContextManager[None]]:
    """
    Returns a factory for ``db.session`` scopes bound to the test engine.

    Usage: ``async with database(): ...``; pass ``commit=True`` to persist on exit.
    """

    def scope(commit: bool = False) -> AbstractAsyncContextManager[None]:
        return fastapi_sqlalchemy_context(engine=engine, commit_on_exit=commit)

    return scope


@pytest.fixture
def http_client() -> MagicMock:
    client = MagicMock(spec=GoogleHttpClient)
    client.request = AsyncMock()
    return client


@pytest.fixture
def oauth_client() -> MagicMock:
    client = MagicMock(spec=GoogleOAuthClient)
    client.refresh_access_token = AsyncMock()
    client.exchange_code = AsyncMock()
    client.fetch_identity = AsyncMock()
    client.revoke = AsyncMock(return_value=True)
    return client


@pytest.fixture
def gmail_client() -> MagicMock:
    client = MagicMock(spec=GmailClient)
    client.list_messages = AsyncMock()
    client.get_message = AsyncMock()
    return client
