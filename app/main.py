from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.api import router
from app.schemas import ErrorResponse
from app.web import router as web_router
from datastore.store import build_default_store
from logging_config import configure_logging
from services.aggregator import AggregationError, build_default_aggregator
from settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    aggregator = build_default_aggregator()
    try:
        yield
    finally:
        logger.info("Shutting down, closing the reading store")
        aggregator.shutdown()
        aggregator.store.close()
        build_default_aggregator.cache_clear()
        build_default_store.cache_clear()


async def aggregation_error_handler(_request: Request, _exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error="Error fetching data").model_dump(),
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Sensor Dashboard",
        description="Time-series readings of the sensor channels for the dashboard.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(AggregationError, aggregation_error_handler)
    app.include_router(router)
    app.include_router(web_router)
    static_dir = Path(get_settings().static_dir).resolve()
    app.mount("/", StaticFiles(directory=static_dir), name="static")
    return app


def run() -> None:
    settings = get_settings()
    logger.info("Server is running on http://localhost:%d", settings.port)
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port, log_config=None)


app = create_app()
