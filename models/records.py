"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Reading:
    """A temperature/humidity sample as persisted by the reading store."""

    id: str
    temp: float
    hum: float
    timestamp: datetime
    created_seq: int
