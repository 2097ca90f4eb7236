"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ReadingIn(BaseModel):
    """Reading pushed by a device.

    Fields are optional at the schema level so that absent values surface as
    a ``MissingFieldError`` with the service's own message.
    """

    temp: Optional[float] = Field(default=None, description="Temperature in °C.")
    hum: Optional[float] = Field(default=None, description="Relative humidity in %.")
    timestamp: Optional[str] = Field(
        default=None,
        description="Sample time, e.g. '2025-04-05 14:32:10' or ISO-8601.",
    )


class IngestResponse(BaseModel):
    message: str
    id: str


class ReadingItem(BaseModel):
    temp: Optional[float] = Field(..., description="null when the stored value is NaN or infinite.")
    hum: Optional[float] = Field(..., description="null when the stored value is NaN or infinite.")
    timestamp_local: str = Field(..., description="America/Mexico_City time, es-MX format.")
    timestamp_utc: str = Field(..., description="ISO-8601 UTC instant.")


class RecentReadingsResponse(BaseModel):
    """Limit mode: ``total`` is the number of items returned."""

    items: List[ReadingItem]
    total: int = Field(..., ge=0)


class PagedReadingsResponse(BaseModel):
    """Paged mode: ``total`` is the size of the whole collection."""

    model_config = ConfigDict(populate_by_name=True)

    items: List[ReadingItem]
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1, alias="pageSize")


class IntervalResponse(BaseModel):
    interval_seconds: int = Field(..., alias="intervalSeconds")

    model_config = ConfigDict(populate_by_name=True)


class CountResponse(BaseModel):
    total_registros: int = Field(..., ge=0)


class ErrorResponse(BaseModel):
    error: str
