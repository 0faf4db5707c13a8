"""
Interfaces of the messaging collaborator.

The protocol client itself (wire protocol, media download, persisted device
store) lives outside this package.  It is plugged in through a
``MessagingBackend`` factory named by the ``MESSAGING_BACKEND`` setting:

    MESSAGING_BACKEND=mybackend.whatsapp:create_backend

``create_backend(settings)`` must return an object implementing
``MessagingBackend``.
"""

import importlib
import logging
from typing import Any, AsyncIterator, Callable, Protocol

from zapbot.bot.events import HandshakeEvent, QuotedMessage, RuntimeEvent
from zapbot.config import ConfigError, Settings

logger = logging.getLogger(__name__)

EventHandler = Callable[[RuntimeEvent], None]


class DeviceIdentity(Protocol):
    @property
    def is_paired(self) -> bool:
        """True when the identity holds a previously authenticated session."""
        ...


class SessionStore(Protocol):
    async def get_first_device(self) -> DeviceIdentity | None: ...

    def new_device(self) -> DeviceIdentity: ...


class MessagingClient(Protocol):
    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    def is_connected(self) -> bool: ...

    async def open_handshake_channel(self) -> AsyncIterator[HandshakeEvent]:
        """
        Return the pairing event stream.  Must be called before ``connect()``.
        The iterator ends when the handshake is over, successful or not.
        """
        ...

    def subscribe(self, handler: EventHandler) -> None:
        """Register *handler* for runtime events; it is called on the event loop."""
        ...

    async def download(self, media: Any) -> bytes: ...

    async def send(self, recipient: str, text: str, quoted: QuotedMessage) -> None: ...


class MessagingBackend(Protocol):
    async def open_session_store(self) -> SessionStore: ...

    def create_client(self, device: DeviceIdentity) -> MessagingClient: ...


def load_backend(app_settings: Settings) -> MessagingBackend:
    """
    Import and call the backend factory named by ``messaging_backend``.

    Raises ``ConfigError`` if the setting is empty, malformed, or the factory
    cannot be imported.
    """
    target = app_settings.messaging_backend
    if not target:
        raise ConfigError("MESSAGING_BACKEND is not set")

    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(
            f"MESSAGING_BACKEND must look like 'package.module:factory', got {target!r}"
        )

    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attr)
    except (ImportError, AttributeError) as exc:
        raise ConfigError(f"Cannot load messaging backend {target!r}: {exc}") from exc

    logger.info("Using messaging backend %s", target)
    return factory(app_settings)
