"""
FastAPI application factory - Gmail metadata mirror API
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from fastapi_async_sqlalchemy import SQLAlchemyMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.exceptions import HTTPException

from app.api.middlewares.auto_commit import AutoCommitMiddleware
from app.api.middlewares.rate_limit import RateLimitMiddleware, rules_from_settings
from app.api.routes import api_router
from app.api.utils.errors import create_error_response, error_response_from
from app.container import ApplicationContainer, close_container
from app.environment import EnvironmentName
from app.exceptions import BaseError, ErrorType
from settings import settings

logger = logging.getLogger(__name__)

_HTTP_ERROR_TYPES = {
    401: ErrorType.AUTHENTICATION_REQUIRED,
    403: ErrorType.ACCESS_FORBIDDEN,
    404: ErrorType.NOT_FOUND,
}


def _setup_error_handlers(app: FastAPI) -> None:
    """Setup FastAPI exception handlers."""

    @app.exception_handler(HTTPException)
    async def handle_http_error(request: Request, exc: HTTPException) -> JSONResponse:
        """Handle FastAPI HTTPException errors."""
        error_type = _HTTP_ERROR_TYPES.get(exc.status_code, ErrorType.VALIDATION_ERROR)
        return create_error_response(error_type, str(exc.detail), exc.status_code or 400)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle request shape errors; resolved locally, never reaching Google."""
        details = [
            {"field": ".".join(str(part) for part in error.get("loc", ())), "message": error.get("msg", "")}
            for error in exc.errors()
        ]
        return create_error_response(ErrorType.VALIDATION_ERROR, "Validation failed", 400, details=details)

    @app.exception_handler(BaseError)
    async def handle_app_error(request: Request, exc: BaseError) -> JSONResponse:
        """Handle custom BaseError exceptions."""
        if exc.status_code >= 400 and exc.status_code < 500:
            logger.warning(f"A user-related (HTTP 4xx) error occurred; {exc}", extra=exc.extra)
        else:
            logger.exception(f"An unhandled app exception occurred; {exc}", extra=exc.extra)

        return error_response_from(exc)

    @app.exception_handler(Exception)
    async def handle_generic_error(request: Request, exc: Exception) -> JSONResponse:
        """Handle any unhandled exceptions."""
        logger.exception(f"An unhandled exception occurred; error: {exc}")

        message = str(exc) if settings.environment == EnvironmentName.DEVELOPMENT else "Internal server error"
        return create_error_response(ErrorType.UNHANDLED_EXCEPTION, message, 500)


def create_app(container: ApplicationContainer | None = None, engine: AsyncEngine | None = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        container: Wired application container whose Google HTTP session is closed on shutdown
        engine: Prebuilt engine to use instead of one created from the database settings
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if container is not None:
            await close_container(container)

    app = FastAPI(
        title="Mailmirror API",
        description="Gmail metadata mirror with OAuth2 login",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Configure OpenAPI security scheme for Bearer token
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
        )

        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
                "description": "Session token issued after Google login (without 'Bearer ' prefix)",
            }
        }

        # Everything except the login flow and health check requires a session token.
        public_paths = {"/health", "/api/auth/google", "/api/auth/callback", "/api/auth/status"}
        for path in openapi_schema["paths"]:
            if path in public_paths:
                continue
            for method in openapi_schema["paths"][path]:
                if method in ["get", "post", "put", "delete", "patch"]:
                    openapi_schema["paths"][path][method]["security"] = [{"BearerAuth": []}]

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    # Override the openapi method
    setattr(app, "openapi", custom_openapi)

    # Setup error handlers
    _setup_error_handlers(app)

    # Add auto-commit middleware FIRST (it will run LAST, after SQLAlchemy middleware creates the session)
    app.add_middleware(AutoCommitMiddleware)

    # Add SQLAlchemy middleware for database session management
    if engine is not None:
        app.add_middleware(SQLAlchemyMiddleware, custom_engine=engine)
    else:
        app.add_middleware(
            SQLAlchemyMiddleware,
            db_url=settings.database.url,
            engine_args={
                "pool_size": settings.database.min_pool_size,
                "max_overflow": settings.database.max_pool_size - settings.database.min_pool_size,
                "pool_pre_ping": True,
                "pool_recycle": 300,
            },
        )

    # Throttled requests never open a database session; CORS stays outermost
    if settings.rate_limit.enabled:
        app.add_middleware(RateLimitMiddleware, rules=rules_from_settings(settings.rate_limit))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )

    # Include API routers
    app.include_router(api_router, prefix="/api")

    # Health check endpoint
    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    return app
