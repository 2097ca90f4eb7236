"""Timestamp parsing and rendering for readings."""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

LOCAL_TIMEZONE = ZoneInfo("America/Mexico_City")


def parse_timestamp(value: str) -> datetime:
    """Parse a device timestamp into an aware UTC datetime.

    Accepts ISO-8601 (``T`` or space separator, optional offset or ``Z``),
    the device form ``YYYY-MM-DD HH:MM:SS`` and bare dates. Naive values are
    taken as UTC. Instants that cannot be expressed in both UTC and local
    time (the edges of the datetime range) are rejected.
    """
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    try:
        instant = parsed.astimezone(timezone.utc)
        instant.astimezone(LOCAL_TIMEZONE)
    except (OverflowError, ValueError) as exc:
        raise ValueError("Timestamp out of range") from exc

    return instant


def format_local(instant: datetime) -> str:
    """Render ``instant`` in Mexico City time, es-MX style: ``5/4/2025, 8:32:10 a.m.``."""
    local = instant.astimezone(LOCAL_TIMEZONE)
    hour = local.hour % 12 or 12
    period = "a.m." if local.hour < 12 else "p.m."
    return (
        f"{local.day}/{local.month}/{local.year}, "
        f"{hour}:{local.minute:02d}:{local.second:02d} {period}"
    )


def format_utc(instant: datetime) -> str:
    utc = instant.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")
