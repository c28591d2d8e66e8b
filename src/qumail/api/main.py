"""FastAPI application entry point."""

import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from qumail.infrastructure import get_settings, get_user_store
from qumail.infrastructure.http.errors import register_exception_handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper())

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    # Creates the schema on first use
    store = get_user_store()
    logger.info(f"User store ready at {store.db_path}")

    yield

    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Unified Gmail and IMAP inbox backend",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Register routes
    from qumail.api.routes import router
    from qumail.infrastructure.http.auth import router as auth_router
    from qumail.infrastructure.http.email import router as email_router

    app.include_router(router)
    app.include_router(auth_router)
    app.include_router(email_router)

    return app


# Create app instance
app = create_app()
