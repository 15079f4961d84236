"""
FastAPI application entrypoint for the shipment enrichment service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI

from app.api.routes import router as api_router
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.dependencies import get_device_lookup_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Release shared connections when the server shuts down."""
    yield
    get_device_lookup_client().close()
    logger.info("Registration database connection closed")


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(
        settings.log_level,
        log_file=settings.log_file,
        buffer_size=settings.log_buffer_size,
    )

    app = FastAPI(
        title="Shipment Enrichment Service",
        version="0.1.0",
        description="Enriches Shopify orders from ShipBob shipment webhooks.",
        lifespan=lifespan,
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()


def run() -> None:
    """Serve the app on the configured port."""
    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)


if __name__ == "__main__":  # pragma: no cover - script entry point
    run()


__all__ = ["app", "create_app", "lifespan", "run"]
