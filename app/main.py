from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from feeds.parsing import FeedError
from feeds.thingspeak import build_default_feed
from logging_config import configure_logging
from services.forecaster import build_default_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    service = None
    try:
        service = build_default_service()
    except FeedError as exc:
        logger.warning("Live feed disabled", extra={"reason": str(exc)})
    try:
        yield
    finally:
        if service is not None:
            service.shutdown()
        build_default_service.cache_clear()
        build_default_feed.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Station Forecast",
        description="Cleans weather station readings and classifies the short-term weather trend.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app


app = create_app()
