"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_serializer

from models.records import Reading, isoformat_utc


class ReadingPayload(BaseModel):
    """One reading as exposed by ``GET /api/data``."""

    current_time: datetime = Field(..., description="Reading time, ISO-8601 in UTC.")
    sensor_value: float
    sensor: str = Field(..., description="Channel the reading belongs to.")

    @field_serializer("current_time")
    def _serialize_current_time(self, value: datetime) -> str:
        return isoformat_utc(value)

    @classmethod
    def from_reading(cls, reading: Reading) -> "ReadingPayload":
        return cls(
            current_time=reading.timestamp,
            sensor_value=reading.value,
            sensor=reading.channel,
        )


class ErrorResponse(BaseModel):
    error: str
