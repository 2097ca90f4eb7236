from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import health_router, router
from app.errors import register_error_handlers
from app.web import router as web_router
from datastore.readings import build_default_store
from logging_config import configure_logging
from services.telemetry import build_default_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    service = build_default_service()
    logger.info("Reading store ready", extra={"store": service.store.name})
    try:
        yield
    finally:
        service.store.close()
        build_default_service.cache_clear()
        build_default_store.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="ESP32 Telemetry API",
        description="Ingestion and retrieval of temperature/humidity readings pushed by devices.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(router)
    app.include_router(health_router)
    app.include_router(web_router)
    return app

app = create_app()
