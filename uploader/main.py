"""Main FastAPI application module."""

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from uploader.api.router import router
from uploader.core.config import Settings
from uploader.core.events import lifespan
from uploader.downloads import DownloadPipeline
from uploader.middleware.correlation import CorrelationMiddleware
from uploader.middleware.errors import ErrorHandlingMiddleware
from uploader.middleware.metrics import MetricsMiddleware
from uploader.middleware.security import SecurityHeadersMiddleware


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application for the given settings.

    Args:
        settings: Settings to use, loaded from the environment when omitted

    Returns:
        Configured FastAPI application
    """
    settings = settings or Settings()

    app = FastAPI(
        title=settings.app_name,
        description="Content-addressed file uploads and URL downloads",
        version=settings.version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pipeline = DownloadPipeline.from_settings(settings)

    # Add middleware in order (inside -> out):
    # 1. CORS (outermost)
    # 2. Security headers
    # 3. Correlation (adds request ID)
    # 4. Metrics (tracks all requests)
    # 5. Error handling (innermost - handles all errors)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        max_age=600,
    )

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose Prometheus metrics."""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(router)

    return app
