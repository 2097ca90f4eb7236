from __future__ import annotations
import json
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional
from uuid import uuid4

from models.records import Reading
from settings import get_settings


_MEMORY_SCHEME = "memory://"
_FILE_SCHEME = "file://"


class StoreError(RuntimeError):
    """Raised when the reading store cannot complete an operation."""


def parse_store_uri(uri: str) -> Optional[Path]:
    """Map a store connection string to a persistence path.

    ``memory://`` yields ``None`` (volatile store), ``file://<path>`` and bare
    paths yield the JSON file location. Any other scheme, such as
    ``mongodb://``, is rejected: only the in-process store is supported.
    """
    candidate = uri.strip()
    if not candidate:
        raise ValueError("Store URI is empty.")
    if candidate == _MEMORY_SCHEME or candidate.startswith(_MEMORY_SCHEME):
        return None
    if candidate.startswith(_FILE_SCHEME):
        location = candidate[len(_FILE_SCHEME):]
        if not location:
            raise ValueError(f"Store URI {uri!r} has no path.")
        return Path(location)
    if "://" in candidate:
        scheme = candidate.split("://", 1)[0]
        raise ValueError(f"Unsupported store scheme {scheme!r}.")
    return Path(candidate)


class ReadingStore:

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._readings: List[Reading] = []
        self._ids: set[str] = set()
        self._next_seq = 1
        self._closed = False
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def insert(self, temp: float, hum: float, timestamp: datetime) -> Reading:
        with self._lock:
            self._ensure_open()
            reading_id = uuid4().hex
            while reading_id in self._ids:
                reading_id = uuid4().hex
            reading = Reading(
                id=reading_id,
                temp=temp,
                hum=hum,
                timestamp=timestamp,
                created_seq=self._next_seq,
            )
            self._readings.append(reading)
            try:
                self._persist()
            except (OSError, TypeError, ValueError) as exc:
                self._readings.pop()
                raise StoreError(f"Failed to persist reading: {exc}") from exc
            self._ids.add(reading_id)
            self._next_seq += 1
            return reading

    def find(self, skip: int = 0, limit: Optional[int] = None) -> list[Reading]:
        """Return readings newest first, applying ``skip`` then ``limit``."""

        with self._lock:
            self._ensure_open()
            # Stable sort keeps insertion order among equal timestamps.
            ordered = sorted(self._readings, key=lambda item: item.timestamp, reverse=True)
        start = max(skip, 0)
        if limit is None:
            return ordered[start:]
        return ordered[start:start + max(limit, 0)]

    def count(self) -> int:
        with self._lock:
            self._ensure_open()
            return len(self._readings)

    def close(self) -> None:
        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreError(f"Reading store {self.name!r} is closed.")

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = [_serialize(reading) for reading in self._readings]
        self.persistence_path.write_text(json.dumps(payload, indent=2))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = []

        try:
            if not isinstance(data, list):
                raise TypeError("expected a list of readings")
            readings = [_deserialize(payload) for payload in data]
        except (KeyError, TypeError, ValueError):
            readings = []

        for reading in readings:
            self._readings.append(reading)
            self._ids.add(reading.id)
            self._next_seq = max(self._next_seq, reading.created_seq + 1)


def _serialize(reading: Reading) -> Dict[str, Any]:
    return {
        "id": reading.id,
        "temp": reading.temp,
        "hum": reading.hum,
        "timestamp": reading.timestamp.isoformat(),
        "created_seq": reading.created_seq,
    }


def _deserialize(payload: Dict[str, Any]) -> Reading:
    return Reading(
        id=str(payload["id"]),
        temp=payload["temp"],
        hum=payload["hum"],
        timestamp=_aware(datetime.fromisoformat(payload["timestamp"])),
        created_seq=int(payload["created_seq"]),
    )


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@lru_cache
def build_default_store(uri: Optional[str] = None) -> ReadingStore:
    settings = get_settings()
    store_uri = settings.store_uri if uri is None else uri
    return ReadingStore(name="readings", persistence_path=parse_store_uri(store_uri))
