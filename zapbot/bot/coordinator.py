"""
Connection coordinator — owns the single connection attempt.

Design
------
- ``request_connect()`` claims the attempt with ``StatusStore.try_begin_connect()``
  and, if it wins, runs the connect sequence as a background task.  Losers
  return ``None`` straight away and simply observe the current status.
- The device identity comes from the backend's session store: the first
  stored device if there is one, a fresh one otherwise.
- The dispatcher is subscribed right after the client is created and before
  ``connect()`` is issued, so no runtime event is missed.
- An unpaired identity goes through the QR handshake: every ``code`` event
  replaces the pairing payload, ``success`` marks the session connected, and a
  channel that ends without success fails the attempt.
- A paired identity just connects.
- Runtime events are forwarded only from the client of the latest attempt.
- Any failure ends in ``Connection Failed``, after a best-effort disconnect
  of that attempt's client.  There is no automatic retry; the
  next ``request_connect()`` is always accepted from that state.
"""

import asyncio
import functools
import logging

from zapbot.bot.client import (
    DeviceIdentity,
    MessagingBackend,
    MessagingClient,
    SessionStore,
)
from zapbot.bot.dispatcher import EventDispatcher
from zapbot.bot.events import HandshakeKind
from zapbot.bot.pairing import encode_pairing_code
from zapbot.bot.state import ConnectionStatus, StatusStore

logger = logging.getLogger(__name__)

# Timeout (seconds) for the best-effort disconnect at shutdown
_DISCONNECT_TIMEOUT: float = 5.0


class ConnectionCoordinator:
    def __init__(
        self,
        store: StatusStore,
        backend: MessagingBackend,
        dispatcher: EventDispatcher,
    ) -> None:
        self._store = store
        self._backend = backend
        self._dispatcher = dispatcher
        self._session_store: SessionStore | None = None
        self._task: asyncio.Task | None = None
        self.client: MessagingClient | None = None

    # ── Entry points ──────────────────────────────────────────────────────────

    def request_connect(self) -> asyncio.Task | None:
        """
        Start a connection attempt unless one is already in flight or the
        session is up.  Returns the attempt's task, or ``None`` when the call
        was a no-op.  Must be called from the event loop.
        """
        if not self._store.try_begin_connect():
            logger.debug(
                "Connect request ignored, status is %s", self._store.snapshot().status.value
            )
            return None

        self._task = asyncio.get_running_loop().create_task(
            self._connect(), name="connection_coordinator"
        )
        return self._task

    async def disconnect(self) -> None:
        """Disconnect the client if it is connected.  No-op when already disconnected."""
        if self._store.snapshot().status is ConnectionStatus.DISCONNECTED:
            return

        client = self.client
        if client is None or not client.is_connected():
            return

        try:
            await asyncio.wait_for(client.disconnect(), timeout=_DISCONNECT_TIMEOUT)
        except Exception as exc:
            logger.error("Error disconnecting client: %s", exc)
        self._store.set_disconnected()

    async def aclose(self) -> None:
        """Cancel a connection attempt that is still running (shutdown only)."""
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # ── Connect sequence ──────────────────────────────────────────────────────

    async def _connect(self) -> None:
        try:
            device = await self._acquire_device()
            client = self._backend.create_client(device)
            self.client = client
            client.subscribe(functools.partial(self._on_event, client))
        except Exception as exc:
            logger.error("Error preparing messaging client: %s", exc)
            self._store.set_failed()
            return

        if device.is_paired:
            await self._reconnect(client)
        else:
            await self._pair(client)

    async def _acquire_device(self) -> DeviceIdentity:
        if self._session_store is None:
            self._session_store = await self._backend.open_session_store()

        device = await self._session_store.get_first_device()
        if device is None:
            logger.info("No stored device, creating a new one")
            device = self._session_store.new_device()
        return device

    def _on_event(self, client: MessagingClient, event: object) -> None:
        # Clients from earlier attempts stay subscribed; only the current one counts.
        if client is not self.client:
            logger.debug("Dropping %s from a stale client", type(event).__name__)
            return
        self._dispatcher.handle(client, event)

    async def _reconnect(self, client: MessagingClient) -> None:
        try:
            await client.connect()
        except Exception as exc:
            logger.error("Error connecting: %s", exc)
            await self._release(client)
            self._store.set_failed()
            return
        self._store.set_connected()

    async def _pair(self, client: MessagingClient) -> None:
        try:
            channel = await client.open_handshake_channel()
            await client.connect()
        except Exception as exc:
            logger.error("Error connecting: %s", exc)
            await self._release(client)
            self._store.set_failed()
            return

        try:
            async for event in channel:
                if event.kind is HandshakeKind.CODE:
                    self._publish_code(event.code)
                elif event.kind is HandshakeKind.SUCCESS:
                    self._store.set_connected()
                    return
                else:
                    logger.info("Login event: %s %s", event.kind.value, event.detail)
        except Exception as exc:
            logger.error("Handshake channel failed: %s", exc)

        logger.warning("Handshake ended without a successful pairing")
        await self._release(client)
        self._store.set_failed()

    async def _release(self, client: MessagingClient) -> None:
        """Best-effort disconnect of a client whose attempt failed."""
        try:
            if client.is_connected():
                await asyncio.wait_for(client.disconnect(), timeout=_DISCONNECT_TIMEOUT)
        except Exception as exc:
            logger.error("Error disconnecting failed client: %s", exc)

    def _publish_code(self, code: str) -> None:
        try:
            payload = encode_pairing_code(code)
        except Exception as exc:
            logger.error("Could not render pairing code: %s", exc)
            return
        self._store.set_waiting_for_pairing(payload)
