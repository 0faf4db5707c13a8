"""
Zap Bot — FastAPI application entry point.

Run with:
    uvicorn zapbot.main:app --host 0.0.0.0 --port 8080

or the ``zap-bot`` console script.  SIGINT / SIGTERM are handled by uvicorn:
the lifespan shutdown disconnects the messaging client before the process
exits.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI

from zapbot.api.routes import connection as connection_router
from zapbot.api.routes import index as index_router
from zapbot.api.routes import status as status_router
from zapbot.bot.client import MessagingBackend, load_backend
from zapbot.bot.coordinator import ConnectionCoordinator
from zapbot.bot.dispatcher import EventDispatcher
from zapbot.bot.state import StatusStore
from zapbot.config import Settings, settings
from zapbot.transcription.groq import GroqTranscriber, Transcriber

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


class _HttpxNoiseFilter(logging.Filter):
    """Drop the INFO line httpx emits for every request.

    Each voice note costs one Groq upload, so these lines would otherwise
    dominate the log.  Warnings and errors from httpx still pass.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return not (
            record.name == "httpx"
            and record.levelno == logging.INFO
            and record.getMessage().startswith("HTTP Request:")
        )


def create_app(
    app_settings: Settings | None = None,
    *,
    backend: MessagingBackend | None = None,
    transcriber: Transcriber | None = None,
) -> FastAPI:
    """
    Build the application.  *backend* and *transcriber* default to the ones
    described by *app_settings*; tests pass fakes.
    """
    cfg = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Wire the bot on startup; disconnect and cancel work on shutdown."""
        _filter = _HttpxNoiseFilter()
        for handler in logging.root.handlers:
            handler.addFilter(_filter)

        cfg.require()
        messaging = backend or load_backend(cfg)
        owned_transcriber: GroqTranscriber | None = None
        if transcriber is None:
            owned_transcriber = GroqTranscriber(
                cfg.groq_api_key,
                model=cfg.groq_model,
                url=cfg.groq_api_url,
                timeout=cfg.groq_timeout,
            )

        store = StatusStore()
        dispatcher = EventDispatcher(
            store,
            transcriber or owned_transcriber,
            reply_template=cfg.reply_template,
            timeout=cfg.message_timeout,
        )
        coordinator = ConnectionCoordinator(store, messaging, dispatcher)
        app.state.status_store = store
        app.state.coordinator = coordinator
        app.state.dispatcher = dispatcher

        if cfg.connect_on_startup:
            coordinator.request_connect()
        logger.info("Bot ready")
        try:
            yield
        finally:
            logger.info("Shutting down...")
            await coordinator.disconnect()
            await coordinator.aclose()
            await dispatcher.aclose()
            if owned_transcriber is not None:
                await owned_transcriber.aclose()
            logger.info("Bot stopped")

    application = FastAPI(
        title="Zap Bot",
        description="Transcribes voice notes and replies with the text.",
        version="0.1.0",
        lifespan=lifespan,
    )

    # ── Routers ──────────────────────────────────────────────────────────────────
    application.include_router(index_router.router, tags=["dashboard"])
    application.include_router(status_router.router, tags=["health"])
    application.include_router(connection_router.router, tags=["connection"])
    return application


app = create_app()


def run() -> None:
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
