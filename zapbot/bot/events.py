"""
Event types exchanged with the messaging client.

The client's runtime feed delivers one of ``DisconnectedEvent``,
``MessageEvent`` or ``OtherEvent``.  The pairing handshake delivers
``HandshakeEvent`` values on a separate channel.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class HandshakeKind(str, Enum):
    CODE = "code"
    SUCCESS = "success"
    TIMEOUT = "timeout"
    ERROR = "error"
    OTHER = "other"


@dataclass(frozen=True)
class HandshakeEvent:
    kind: HandshakeKind
    code: str = ""
    detail: str = ""


@dataclass(frozen=True)
class DisconnectedEvent:
    """The client lost (or closed) its connection to the service."""


@dataclass(frozen=True)
class MessageEvent:
    """
    An inbound message.

    ``audio`` is the client's opaque media reference for a voice note, or
    ``None`` for any other kind of message.  ``content`` is the original
    message object, echoed back when quoting it.
    """

    chat: str
    sender: str
    message_id: str
    content: Any = None
    audio: Any = None


@dataclass(frozen=True)
class OtherEvent:
    kind: str = ""


RuntimeEvent = DisconnectedEvent | MessageEvent | OtherEvent


@dataclass(frozen=True)
class QuotedMessage:
    """Reference to a prior message so a reply renders as a threaded response."""

    sender: str
    message_id: str
    content: Any = None
