"""Validation, retrieval and polling hints for temperature/humidity readings."""

from __future__ import annotations

import logging
import math
import random
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, List, Optional

from datastore.readings import ReadingStore, build_default_store
from models.records import Reading
from services.timestamps import format_local, format_utc, parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 30
MAX_BATCH = 500
MIN_INTERVAL_SECONDS = 4
MAX_INTERVAL_SECONDS = 60

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class ClientInputError(ValueError):
    """Base class for request payloads the client must fix."""


class MissingFieldError(ClientInputError):
    pass


class InvalidTimestampError(ClientInputError):
    pass


@dataclass
class RecentPage:
    items: List[dict[str, Any]]
    total: int


@dataclass
class ReadingPage:
    items: List[dict[str, Any]]
    total: int
    page: int
    page_size: int


def parse_int(raw: Optional[str]) -> Optional[int]:
    """Read the leading integer of ``raw`` (``"12abc"`` -> 12), or ``None``."""
    if raw is None:
        return None
    match = _LEADING_INT.match(str(raw))
    if match is None:
        return None
    return int(match.group(1))


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))


def resolve_limit(raw: Optional[str]) -> int:
    # Zero falls back to the default, same as non-numeric input.
    parsed = parse_int(raw) or DEFAULT_LIMIT
    return _clamp(parsed, 1, MAX_BATCH)


def resolve_page(raw: Optional[str]) -> int:
    parsed = parse_int(raw)
    if parsed is None:
        return DEFAULT_PAGE
    return max(1, parsed)


def resolve_page_size(raw: Optional[str]) -> int:
    parsed = parse_int(raw)
    if parsed is None:
        return DEFAULT_PAGE_SIZE
    return _clamp(parsed, 1, MAX_BATCH)


def _json_number(value: float) -> Optional[float]:
    # NaN and infinities have no JSON form; they render as null.
    return value if math.isfinite(value) else None


def format_reading(reading: Reading) -> dict[str, Any]:
    return {
        "temp": _json_number(reading.temp),
        "hum": _json_number(reading.hum),
        "timestamp_local": format_local(reading.timestamp),
        "timestamp_utc": format_utc(reading.timestamp),
    }


class TelemetryService:
    """Request-scoped operations over the shared reading store.

    Holds no mutable state of its own, so one instance is shared by all
    concurrent requests. Store faults (``StoreError``) propagate unchanged.
    """

    def __init__(self, store: ReadingStore, rng: Optional[random.Random] = None) -> None:
        self.store = store
        self._rng = rng or random.Random()

    def ingest(
        self,
        temp: Optional[float],
        hum: Optional[float],
        timestamp: Optional[str],
    ) -> Reading:
        if temp is None or hum is None or not timestamp:
            raise MissingFieldError("Missing fields: temp, hum or timestamp")

        try:
            instant = parse_timestamp(timestamp)
        except ValueError as exc:
            raise InvalidTimestampError("Invalid timestamp format") from exc

        reading = self.store.insert(temp=temp, hum=hum, timestamp=instant)
        logger.info(
            "Reading stored",
            extra={
                "reading_id": reading.id,
                "temp": temp,
                "hum": hum,
                "timestamp": timestamp,
            },
        )
        return reading

    def list_recent(self, limit: Optional[str]) -> RecentPage:
        size = resolve_limit(limit)
        items = [format_reading(reading) for reading in self.store.find(limit=size)]
        # ``total`` is the batch size here, unlike ``list_paged``.
        return RecentPage(items=items, total=len(items))

    def list_paged(self, page: Optional[str], page_size: Optional[str]) -> ReadingPage:
        current = resolve_page(page)
        size = resolve_page_size(page_size)
        skip = (current - 1) * size

        readings = self.store.find(skip=skip, limit=size)
        total = self.store.count()
        logger.debug(
            "Page fetched",
            extra={"page": current, "page_size": size, "total": total},
        )
        return ReadingPage(
            items=[format_reading(reading) for reading in readings],
            total=total,
            page=current,
            page_size=size,
        )

    def random_interval(self) -> int:
        return self._rng.randint(MIN_INTERVAL_SECONDS, MAX_INTERVAL_SECONDS)

    def count(self) -> int:
        return self.store.count()


@lru_cache
def build_default_service() -> TelemetryService:
    """Factory that wires the service to the process-wide store."""
    return TelemetryService(store=build_default_store())
