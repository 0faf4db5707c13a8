"""
Connection status store.

The coordinator, the event dispatcher and the HTTP routes all share one
``StatusStore``.  Every read and write goes through a single lock, and no
critical section performs I/O or awaits, so status polling never waits on the
network.

Transitions
-----------
Each mutator checks the requested edge against ``_ALLOWED_SOURCES``; an edge
that is not listed is rejected (no mutation, ``False`` returned).

    Disconnected / Connection Failed  --try_begin_connect-->  Connecting
    Connecting / Waiting              --pairing code------->  Waiting
    Connecting / Waiting              --success------------>  Connected
    Connecting / Waiting              --failure------------>  Connection Failed
    Connected                         --disconnect--------->  Disconnected

``try_begin_connect()`` is the only way into ``Connecting``.  It is a
compare-and-set, so concurrent callers never start two connection attempts.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

logger = logging.getLogger(__name__)


class ConnectionStatus(str, Enum):
    DISCONNECTED = "Disconnected"
    CONNECTING = "Connecting..."
    WAITING_FOR_PAIRING = "Waiting for QR Scan"
    CONNECTED = "Connected"
    CONNECTION_FAILED = "Connection Failed"

    @property
    def css_class(self) -> str:
        """Short tag used by the status fragment: connected|disconnected|waiting|connecting."""
        return _CSS_CLASSES[self]


_CSS_CLASSES = {
    ConnectionStatus.DISCONNECTED: "disconnected",
    ConnectionStatus.CONNECTION_FAILED: "disconnected",
    ConnectionStatus.CONNECTING: "connecting",
    ConnectionStatus.WAITING_FOR_PAIRING: "waiting",
    ConnectionStatus.CONNECTED: "connected",
}

# target status -> statuses it may be entered from
_ALLOWED_SOURCES: dict[ConnectionStatus, frozenset[ConnectionStatus]] = {
    ConnectionStatus.CONNECTING: frozenset(
        [ConnectionStatus.DISCONNECTED, ConnectionStatus.CONNECTION_FAILED]
    ),
    ConnectionStatus.WAITING_FOR_PAIRING: frozenset(
        [ConnectionStatus.CONNECTING, ConnectionStatus.WAITING_FOR_PAIRING]
    ),
    ConnectionStatus.CONNECTED: frozenset(
        [ConnectionStatus.CONNECTING, ConnectionStatus.WAITING_FOR_PAIRING]
    ),
    ConnectionStatus.CONNECTION_FAILED: frozenset(
        [ConnectionStatus.CONNECTING, ConnectionStatus.WAITING_FOR_PAIRING]
    ),
    ConnectionStatus.DISCONNECTED: frozenset([ConnectionStatus.CONNECTED]),
}


@dataclass(frozen=True)
class ManagerState:
    """Immutable view of the connection state at one instant."""

    status: ConnectionStatus
    pairing_payload: bytes | None = None
    session_start: datetime | None = None

    def uptime(self, now: datetime | None = None) -> timedelta | None:
        """Time since the session started, rounded to the second; ``None`` unless connected."""
        if self.status is not ConnectionStatus.CONNECTED or self.session_start is None:
            return None
        now = now or datetime.now(timezone.utc)
        seconds = max(0.0, (now - self.session_start).total_seconds())
        return timedelta(seconds=round(seconds))


class StatusStore:
    """Lock-guarded holder of the current ``ManagerState``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = ManagerState(ConnectionStatus.DISCONNECTED)

    def snapshot(self) -> ManagerState:
        with self._lock:
            return self._state

    def try_begin_connect(self) -> bool:
        """
        Claim the single connection attempt.

        Returns ``False`` without touching the state when an attempt is
        already in flight or a session is established.
        """
        return self._transition(ConnectionStatus.CONNECTING)

    def set_waiting_for_pairing(self, payload: bytes) -> bool:
        return self._transition(ConnectionStatus.WAITING_FOR_PAIRING, payload=payload)

    def set_connected(self) -> bool:
        return self._transition(
            ConnectionStatus.CONNECTED, session_start=datetime.now(timezone.utc)
        )

    def set_failed(self) -> bool:
        return self._transition(ConnectionStatus.CONNECTION_FAILED)

    def set_disconnected(self) -> bool:
        return self._transition(ConnectionStatus.DISCONNECTED)

    def _transition(
        self,
        target: ConnectionStatus,
        payload: bytes | None = None,
        session_start: datetime | None = None,
    ) -> bool:
        with self._lock:
            current = self._state.status
            if current not in _ALLOWED_SOURCES[target]:
                rejected = True
            else:
                rejected = False
                self._state = ManagerState(target, payload, session_start)

        if rejected:
            logger.debug("Rejected status transition %s -> %s", current.name, target.name)
            return False
        if current is not target:
            logger.info("Status: %s -> %s", current.value, target.value)
        return True
