"""
Edu CMS Server Application Entry Point

This module defines the FastAPI application instance, registers all routers,
configures global exception handling and the session middleware, and provides
a test-friendly application factory.

Design Goals
------------
- Deterministic startup
- Centralized router registration
- Global exception safety net
- Test-friendly via create_app()
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .auth.session import SessionCookieMiddleware
from .config import settings
from .core.errors import (
    APIError,
    api_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from .core.log_config import configure_logging
from .db import async_engine, create_all_tables

from .api import (
    account_routes,
    category_routes,
    health_routes,
    question_routes,
    user_routes,
)


logger = logging.getLogger("edu.app")


# ---------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Startup: configure logging and optionally create the schema.
    Shutdown: release pooled database connections.
    """
    configure_logging(settings.log_level, settings.log_dir)
    logger.info("Starting edu-cms-server")

    if settings.create_tables:
        await create_all_tables()
        logger.info("Database schema ensured")

    yield

    logger.info("Shutting down edu-cms-server")
    await async_engine.dispose()


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app(use_lifespan: bool = True) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Parameters
    ----------
    use_lifespan : bool
        Tests pass False to skip logging setup and database work.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    app = FastAPI(
        title="edu-cms-server",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan if use_lifespan else None,
    )

    # --------------------------------------------------------------
    # Middleware
    # --------------------------------------------------------------

    app.add_middleware(SessionCookieMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --------------------------------------------------------------
    # Global Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(category_routes.router)
    app.include_router(question_routes.router)
    app.include_router(user_routes.router)
    app.include_router(account_routes.router)

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn/Gunicorn)
# ---------------------------------------------------------------------

app = create_app()
