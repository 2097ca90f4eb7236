from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_readings(items: Iterable[Dict[str, Any]]) -> None:
    rows = list(items)
    if not rows:
        typer.echo("No readings stored.")
        return
    for item in rows:
        typer.echo(
            f"  - {item.get('timestamp_local')} | {item.get('temp')}°C | {item.get('hum')}%"
        )


def render_recent(payload: Dict[str, Any]) -> None:
    echo_heading(f"Latest readings ({payload.get('total', 0)})")
    echo_readings(payload.get("items") or [])


def render_page(payload: Dict[str, Any]) -> None:
    echo_heading(
        f"Page {payload.get('page')} (size {payload.get('pageSize')}, "
        f"{payload.get('total')} readings stored)"
    )
    echo_readings(payload.get("items") or [])
