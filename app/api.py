"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, status

from app.schemas import ErrorResponse, ReadingPayload
from services.aggregator import Aggregator, build_default_aggregator

logger = logging.getLogger(__name__)

router = APIRouter()


def get_aggregator() -> Aggregator:
    return build_default_aggregator()


@router.get(
    "/api/data",
    response_model=List[ReadingPayload],
    responses={status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse}},
    summary="Readings of every channel, newest first.",
)
async def get_data(
    aggregator: Aggregator = Depends(get_aggregator),
) -> List[ReadingPayload]:
    logger.info("Received request for /api/data")
    readings = await aggregator.fetch_all_readings()
    return [ReadingPayload.from_reading(reading) for reading in readings]


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
