"""
FastAPI application for the Sentiment Refresh service.

Exposes the refresh trigger and status endpoints plus a health check.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import FastAPI

from sentiment_refresh.api.endpoints import refresh
from sentiment_refresh.config.settings import settings
from sentiment_refresh.core.sentiment_labeler import VaderScorer
from sentiment_refresh.monitoring.metrics import PrometheusExporter
from sentiment_refresh.utils.logging_utils import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging and optional metrics on startup."""
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    # Shared by every request's pipeline
    app.state.scorer = VaderScorer()
    app.state.prometheus_exporter = None
    if settings.PROMETHEUS_ENABLED:
        exporter = PrometheusExporter(port=settings.PROMETHEUS_PORT)
        exporter.start_server()
        app.state.prometheus_exporter = exporter

    yield

    logger.info("Shutting down application")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Triggers subreddit sentiment refresh runs and reports their status.",
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_tags=[
            {"name": "refresh", "description": "Refresh run trigger and status"},
            {"name": "health", "description": "Health check"},
        ],
    )

    app.include_router(refresh.router, prefix="/api/v1/refresh", tags=["refresh"])

    @app.get("/health", tags=["health"], summary="Health Check")
    async def health_check():
        return {
            "status": "healthy",
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "credentials_configured": not settings.validate_credentials(),
        }

    return app


app = create_app()
