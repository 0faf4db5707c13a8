# Connection lifecycle and voice-note handling
from zapbot.bot.coordinator import ConnectionCoordinator
from zapbot.bot.dispatcher import EventDispatcher, compose_reply
from zapbot.bot.events import (
    DisconnectedEvent,
    HandshakeEvent,
    HandshakeKind,
    MessageEvent,
    OtherEvent,
    QuotedMessage,
)
from zapbot.bot.state import ConnectionStatus, ManagerState, StatusStore

__all__ = [
    "ConnectionCoordinator",
    "EventDispatcher",
    "compose_reply",
    "DisconnectedEvent",
    "HandshakeEvent",
    "HandshakeKind",
    "MessageEvent",
    "OtherEvent",
    "QuotedMessage",
    "ConnectionStatus",
    "ManagerState",
    "StatusStore",
]
