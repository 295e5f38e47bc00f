from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from app.api import router
from datastore.gateway import build_default_gateway
from logging_config import configure_logging
from services.ingestion import build_default_ingestion
from services.reset_scheduler import build_default_scheduler
from services.ticker import ResetTicker, build_default_ticker
from services.time_resolver import build_default_resolver
from settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # Backend selection happens here, once, before any request is served.
    gateway = build_default_gateway()
    build_default_scheduler()
    build_default_ingestion()

    ticker: Optional[ResetTicker] = None
    if get_settings().reset_ticks_enabled:
        ticker = build_default_ticker()
        ticker.start()
    try:
        yield
    finally:
        if ticker is not None:
            ticker.shutdown()
        gateway.close()
        build_default_resolver().close()
        for factory in (
            build_default_ticker,
            build_default_ingestion,
            build_default_scheduler,
            build_default_resolver,
            build_default_gateway,
        ):
            factory.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Greenhouse Telemetry Collector",
        description="Stores sensor readings and wipes them at each retention boundary.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
