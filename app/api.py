"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.errors import ApiError
from app.schemas import (
    CountResponse,
    ErrorResponse,
    IngestResponse,
    IntervalResponse,
    PagedReadingsResponse,
    ReadingIn,
    RecentReadingsResponse,
)
from datastore.readings import StoreError
from services.telemetry import ClientInputError, TelemetryService, build_default_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

_ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


def get_service() -> TelemetryService:
    return build_default_service()


def _store_failure(exc: StoreError, action: str) -> ApiError:
    logger.exception("Store failure while %s", action, extra={"reason": str(exc)})
    return ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


@router.post(
    "/datos",
    status_code=status.HTTP_201_CREATED,
    response_model=IngestResponse,
    responses=_ERROR_RESPONSES,
    summary="Store a temperature/humidity reading pushed by a device.",
)
async def ingest_reading(
    payload: ReadingIn,
    service: TelemetryService = Depends(get_service),
) -> IngestResponse:
    try:
        reading = service.ingest(
            temp=payload.temp,
            hum=payload.hum,
            timestamp=payload.timestamp,
        )
    except ClientInputError as exc:
        raise ApiError(status.HTTP_400_BAD_REQUEST, str(exc)) from exc
    except StoreError as exc:
        raise _store_failure(exc, "storing a reading") from exc
    return IngestResponse(message="Reading stored successfully", id=reading.id)


@router.get(
    "/datos",
    response_model=None,
    responses={
        status.HTTP_200_OK: {"model": PagedReadingsResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
    summary="List readings newest first, by limit or by page.",
)
async def list_readings(
    limit: Optional[str] = Query(None, description="Return the N most recent readings (1-500)."),
    page: Optional[str] = Query(None, description="1-based page number."),
    page_size: Optional[str] = Query(None, alias="pageSize", description="Page size (1-500)."),
    service: TelemetryService = Depends(get_service),
) -> RecentReadingsResponse | PagedReadingsResponse:
    try:
        if limit:
            recent = service.list_recent(limit)
            return RecentReadingsResponse(items=recent.items, total=recent.total)

        result = service.list_paged(page, page_size)
    except StoreError as exc:
        raise _store_failure(exc, "listing readings") from exc
    return PagedReadingsResponse(
        items=result.items,
        total=result.total,
        page=result.page,
        page_size=result.page_size,
    )


@router.get(
    "/update",
    response_model=IntervalResponse,
    summary="Suggest a polling interval between 4 and 60 seconds.",
)
async def polling_interval(
    service: TelemetryService = Depends(get_service),
) -> IntervalResponse:
    return IntervalResponse(interval_seconds=service.random_interval())


@router.get(
    "/datos/count",
    response_model=CountResponse,
    responses={status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse}},
    summary="Count every stored reading.",
)
async def count_readings(
    service: TelemetryService = Depends(get_service),
) -> CountResponse:
    try:
        total = service.count()
    except StoreError as exc:
        raise _store_failure(exc, "counting readings") from exc
    return CountResponse(total_registros=total)


health_router = APIRouter()


@health_router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
