from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

_ENDPOINTS = (
    ("POST", "/api/datos", "Store a reading: {temp, hum, timestamp}"),
    ("GET", "/api/datos", "List readings (?limit=N or ?page=P&pageSize=S)"),
    ("GET", "/api/update", "Random polling interval between 4s and 60s"),
    ("GET", "/api/datos/count", "Total number of stored readings"),
)


router = APIRouter(include_in_schema=False)


@router.get("/", name="status_page", response_class=HTMLResponse)
async def status_page(request: Request) -> HTMLResponse:
    """Status page; the record count is fetched by the browser."""
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "endpoints": _ENDPOINTS,
            "count_url": "/api/datos/count",
        },
    )
