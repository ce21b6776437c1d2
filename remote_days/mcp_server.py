"""MCP server exposing read-only Remote Days month previews."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .absence_client import AbsenceClient
from .config import load_settings
from .console import TerminalConsole
from .planner import remote_days_for_month
from .service import RemoteWorkService

mcp = FastMCP("remote-days")

_service: Optional[RemoteWorkService] = None
_lock = asyncio.Lock()


def _get_service() -> RemoteWorkService:
    global _service
    if _service is None:
        settings = load_settings()
        client = AbsenceClient(settings.api_key_id, settings.api_key, settings.api_base)
        _service = RemoteWorkService(settings, client, TerminalConsole())
    return _service


def _ensure_month(service: RemoteWorkService, month: Optional[str] = None) -> datetime:
    now = datetime.now(service.zone)
    if not month:
        return now
    parsed = datetime.strptime(month, "%Y-%m")
    return now.replace(year=parsed.year, month=parsed.month, day=1)


@mcp.tool()
async def get_remote_days(month: Optional[str] = None) -> dict:
    """Return the configured remote workdays of a month (YYYY-MM, default current)."""

    service = _get_service()
    anchor = _ensure_month(service, month)
    days = remote_days_for_month(anchor, service.settings.remote_weekdays)
    return {"month": f"{anchor:%Y-%m}", "remote_days": [day.date().isoformat() for day in days]}


@mcp.tool()
async def preview_month(month: Optional[str] = None) -> dict:
    """Return the remote workdays of a month that have no absence yet."""

    service = _get_service()
    anchor = _ensure_month(service, month)
    async with _lock:
        plan = await service.preview_month(anchor)
    return {
        "month": f"{anchor:%Y-%m}",
        "remote_days": [day.date().isoformat() for day in plan.remote_days],
        "uncovered_days": [day.date().isoformat() for day in plan.uncovered_days],
        "existing_absences": plan.existing_absences,
    }


def main() -> None:  # pragma: no cover - io bound
    mcp.run()


__all__ = ["mcp", "get_remote_days", "preview_month", "main"]
