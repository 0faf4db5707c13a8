"""
Connection control endpoints.

POST /connect
-------------
Starts a connection attempt in the background and answers immediately with
the status fragment (``Connecting...``).  If an attempt is already running or
the session is up, nothing is started and the current status is returned,
exactly like ``GET /status``.

POST /disconnect
----------------
Disconnects the client (waits for it), then returns the status fragment.
Calling it while already disconnected changes nothing.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from zapbot.api.deps import get_coordinator, get_status_store
from zapbot.api.fragments import render_status
from zapbot.bot.coordinator import ConnectionCoordinator
from zapbot.bot.state import StatusStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/connect", response_class=HTMLResponse)
async def connect(
    coordinator: ConnectionCoordinator = Depends(get_coordinator),
    store: StatusStore = Depends(get_status_store),
) -> HTMLResponse:
    if coordinator.request_connect() is not None:
        logger.info("Connection attempt started")
    return HTMLResponse(render_status(store.snapshot()))


@router.post("/disconnect", response_class=HTMLResponse)
async def disconnect(
    coordinator: ConnectionCoordinator = Depends(get_coordinator),
    store: StatusStore = Depends(get_status_store),
) -> HTMLResponse:
    await coordinator.disconnect()
    return HTMLResponse(render_status(store.snapshot()))
