"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from eventcrawl.api.routes import admin, health
from eventcrawl.core.config import AppSettings, load_settings
from eventcrawl.core.logging import configure_logging
from eventcrawl.crawler.coordinator import CrawlCoordinator
from eventcrawl.crawler.factory import build_coordinator


def create_app(
    settings: Optional[AppSettings] = None,
    coordinator: Optional[CrawlCoordinator] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Without an injected coordinator one is built from settings at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Initialize and tear down application resources."""
        app_settings = settings or load_settings()
        configure_logging(app_settings.log_level, app_settings.log_format)
        app.state.settings = app_settings
        app.state.coordinator = coordinator or build_coordinator(app_settings)
        yield

    app = FastAPI(
        title="EventCrawl Schema Discovery",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(health.router)
    app.include_router(admin.router, prefix="/admin")
    return app
