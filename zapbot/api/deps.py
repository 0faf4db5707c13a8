"""
Shared FastAPI dependencies.

The lifespan in ``zapbot.main`` builds one ``StatusStore`` and one
``ConnectionCoordinator`` per application and parks them on ``app.state``;
routes receive them through these dependencies.
"""

from fastapi import HTTPException, Request

from zapbot.bot.coordinator import ConnectionCoordinator
from zapbot.bot.state import StatusStore


def get_status_store(request: Request) -> StatusStore:
    store = getattr(request.app.state, "status_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Service is starting up")
    return store


def get_coordinator(request: Request) -> ConnectionCoordinator:
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Service is starting up")
    return coordinator
