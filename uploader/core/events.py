"""Application startup and shutdown events."""

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI

from uploader.core.config import Settings
from uploader.core.logging import configure_logging, get_logger
from uploader.downloads import DownloadPipeline

logger = get_logger(__name__)


def create_start_app_handler(app: FastAPI) -> Callable[[], Awaitable[None]]:
    """Create startup handler.

    Args:
        app: FastAPI application instance

    Returns:
        Startup handler function
    """

    async def start_app() -> None:
        settings: Settings = app.state.settings
        configure_logging(level=settings.LOG_LEVEL, json_logs=settings.JSON_LOGS)

        if not settings.DOWNLOAD_VERIFY_TLS:
            logger.warning(
                "tls_verification_disabled",
                detail="certificates of downloaded URLs are not validated",
            )
        if not settings.auth_enabled:
            logger.info("basic_auth_disabled")

        logger.info(
            "application_started",
            files_dir=str(settings.FILES_DIR),
            hash_algorithm=settings.HASH_ALGORITHM,
        )

    return start_app


def create_stop_app_handler(app: FastAPI) -> Callable[[], Awaitable[None]]:
    """Create shutdown handler.

    Jobs still running are left as they are; their logs show how far they
    got.

    Args:
        app: FastAPI application instance

    Returns:
        Shutdown handler function
    """

    async def stop_app() -> None:
        pipeline: DownloadPipeline = app.state.pipeline
        if pipeline.in_flight:
            logger.warning("shutdown_with_downloads_in_flight", count=pipeline.in_flight)
        logger.info("application_stopped")

    return stop_app


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the startup and shutdown handlers around the application."""
    await create_start_app_handler(app)()
    yield
    await create_stop_app_handler(app)()
