from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi_async_sqlalchemy import SQLAlchemyMiddleware, db
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.applications import Starlette

from settings import settings


@asynccontextmanager
async def fastapi_sqlalchemy_context(
    engine: AsyncEngine | None = None, commit_on_exit: bool = False
) -> AsyncGenerator[None, None]:
    """
    Provide the global ``db.session`` outside of a request, for scripts, the CLI and tests.

    Args:
        engine: Engine to bind instead of one built from the database settings
        commit_on_exit: Commit the session when the block exits without an error
    """
    # A throwaway Starlette app is enough to initialize the middleware's session factory.
    app = Starlette()
    if engine is not None:
        SQLAlchemyMiddleware(app, custom_engine=engine)
    else:
        SQLAlchemyMiddleware(
            app,
            db_url=settings.database.url,
            engine_args={
                "echo": False,
                "pool_size": settings.database.min_pool_size,
                "max_overflow": settings.database.max_pool_size - settings.database.min_pool_size,
            },
        )

    async with db(commit_on_exit=commit_on_exit):
        yield
