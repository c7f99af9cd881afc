"""TrustScan API - link and content trust scanner."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trustscan.config import Settings, get_settings
from trustscan.routers import alerts, health, history, links, review, scans, settings as settings_router, watchlist
from trustscan.services.container import build_services
from trustscan.services.storage import create_kv_store

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Process settings; defaults to ``get_settings()``.
    """
    settings = settings or get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.api_log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info("Starting TrustScan API...")
        kv = await create_kv_store(settings)
        services = build_services(kv, settings)
        app.state.settings = settings
        app.state.services = services

        try:
            await services.history.apply_retention(await services.settings.get())
        except Exception as e:
            logger.warning(f"History retention on startup failed: {e}")

        yield

        logger.info("Shutting down TrustScan API...")
        await kv.close()

    app = FastAPI(
        title="TrustScan",
        description="Link and content trust scanner",
        version=VERSION,
        debug=settings.api_debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(scans.router, prefix="/api/scans", tags=["Scans"])
    app.include_router(history.router, prefix="/api/history", tags=["History"])
    app.include_router(alerts.router, prefix="/api/alerts", tags=["Alerts"])
    app.include_router(watchlist.router, prefix="/api/watchlist", tags=["Watchlist"])
    app.include_router(settings_router.router, prefix="/api/settings", tags=["Settings"])
    app.include_router(links.router, prefix="/api/links", tags=["Links"])
    app.include_router(review.router, prefix="/api/review", tags=["Review"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "TrustScan",
            "version": VERSION,
            "description": "Link and content trust scanner",
        }

    return app


app = create_app()
