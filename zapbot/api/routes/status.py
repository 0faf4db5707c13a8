"""
GET /status — HTML status fragment polled by the dashboard.
GET /api/status — the same snapshot as JSON.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from zapbot.api.deps import get_status_store
from zapbot.api.fragments import render_status
from zapbot.bot.state import StatusStore

router = APIRouter()
logger = logging.getLogger(__name__)


class StatusResponse(BaseModel):
    status: str
    status_class: str
    session_start: datetime | None
    uptime_seconds: int | None
    pairing: bool


@router.get("/status", response_class=HTMLResponse)
def get_status_fragment(store: StatusStore = Depends(get_status_store)) -> HTMLResponse:
    """Status label, uptime, pairing QR code and the available actions."""
    return HTMLResponse(render_status(store.snapshot()))


@router.get("/api/status", response_model=StatusResponse)
def get_status(store: StatusStore = Depends(get_status_store)) -> StatusResponse:
    """
    Returns the connection status.

    - **status**: human label, e.g. ``"Connected"``.
    - **status_class**: ``connected``, ``disconnected``, ``waiting`` or ``connecting``.
    - **uptime_seconds**: seconds since the session started, only when connected.
    - **pairing**: ``true`` while a QR code is waiting to be scanned.
    """
    state = store.snapshot()
    uptime = state.uptime()
    return StatusResponse(
        status=state.status.value,
        status_class=state.status.css_class,
        session_start=state.session_start,
        uptime_seconds=int(uptime.total_seconds()) if uptime is not None else None,
        pairing=state.pairing_payload is not None,
    )
