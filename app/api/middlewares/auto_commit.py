"""
Middleware committing the request's database session once the response is ready.
"""

import logging
from typing import Awaitable, Callable

from fastapi import Request, Response
from fastapi_async_sqlalchemy import db
from fastapi_async_sqlalchemy.exceptions import MissingSessionError
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class AutoCommitMiddleware(BaseHTTPMiddleware):
    """
    Commits the request's transaction when the response is a success or a client error, and rolls it back
    on server errors and on exceptions that escaped every handler.

    Client errors still commit because some of them record state on purpose, e.g. the credentials cleared
    when Google rejects a refresh token.
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        try:
            response = await call_next(request)
        except Exception as e:
            await self._finish(commit=False, reason=str(e))
            raise

        await self._finish(commit=response.status_code < 500, reason=f"status {response.status_code}")
        return response

    @staticmethod
    async def _finish(commit: bool, reason: str) -> None:
        try:
            session = db.session
        except MissingSessionError:
            # No session exists for this request, which is fine for endpoints that don't use the database
            logger.debug("No database session found for request - skipping commit")
            return

        try:
            if commit:
                await session.commit()
                logger.debug("Database transaction committed successfully")
            else:
                await session.rollback()
                logger.warning(f"Database transaction rolled back; {reason}")
        except SQLAlchemyError as e:
            logger.warning(f"Failed to finish database transaction: {e}")
