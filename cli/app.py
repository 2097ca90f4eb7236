from __future__ import annotations

import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_page, render_recent

DEVICE_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Send readings to and query the ESP32 telemetry API.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def device_timestamp(now: Optional[datetime] = None) -> str:
    """Current UTC time in the ``YYYY-MM-DD HH:MM:SS`` form devices send."""
    moment = now or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).strftime(DEVICE_TIMESTAMP_FORMAT)


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Telemetry API base URL (defaults to API_BASE_URL env or http://localhost:3000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("send")
def send_command(
    ctx: typer.Context,
    temp: float = typer.Argument(..., help="Temperature in °C."),
    hum: float = typer.Argument(..., help="Relative humidity in %."),
    timestamp: Optional[str] = typer.Option(
        None,
        "--timestamp",
        "-t",
        help="Sample time (defaults to now, UTC).",
    ),
) -> None:
    """Push a single reading."""
    state = _get_state(ctx)
    sample_time = timestamp or device_timestamp()
    reading_id = state.client.send_reading(temp, hum, sample_time)
    typer.secho(f"Reading stored. id={reading_id}", fg=typer.colors.GREEN)


@app.command("recent")
def recent_command(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-n", help="Number of readings (1-500)."),
) -> None:
    """Show the most recent readings."""
    state = _get_state(ctx)
    render_recent(state.client.recent(limit))


@app.command("page")
def page_command(
    ctx: typer.Context,
    page: int = typer.Option(1, "--page", "-p", help="1-based page number."),
    page_size: int = typer.Option(30, "--page-size", "-s", help="Readings per page (1-500)."),
) -> None:
    """Show one page of readings, newest first."""
    state = _get_state(ctx)
    render_page(state.client.page(page, page_size))


@app.command("count")
def count_command(ctx: typer.Context) -> None:
    """Print the number of stored readings."""
    state = _get_state(ctx)
    typer.echo(f"total_registros: {state.client.count()}")


@app.command("interval")
def interval_command(ctx: typer.Context) -> None:
    """Print the polling interval suggested by the server."""
    state = _get_state(ctx)
    typer.echo(f"intervalSeconds: {state.client.interval()}")


@app.command("simulate")
def simulate_command(
    ctx: typer.Context,
    readings: int = typer.Option(10, "--readings", "-r", min=1, help="Readings to send."),
    honor_interval: bool = typer.Option(
        True,
        "--honor-interval/--no-honor-interval",
        help="Sleep for the server-suggested interval between readings.",
    ),
) -> None:
    """Act like a DHT22 device: send random readings at the suggested cadence."""
    state = _get_state(ctx)
    for index in range(1, readings + 1):
        temp = round(random.uniform(15.0, 35.0), 1)
        hum = round(random.uniform(20.0, 80.0), 1)
        sample_time = device_timestamp()
        reading_id = state.client.send_reading(temp, hum, sample_time)
        typer.echo(f"[{index}] {temp}°C | {hum}% | {sample_time} -> {reading_id}")

        if index == readings:
            break
        delay = state.client.interval()
        if honor_interval:
            typer.echo(f"    next reading in {delay}s")
            time.sleep(delay)
