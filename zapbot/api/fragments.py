"""
HTML status fragment, swapped into ``#status-box`` by htmx.
"""

import base64
from datetime import datetime, timedelta
from html import escape

from zapbot.bot.pairing import PAIRING_MEDIA_TYPE
from zapbot.bot.state import ConnectionStatus, ManagerState

_CONNECT_BUTTON = '<button hx-post="/connect" hx-target="#status-box">Connect</button>'
_DISCONNECT_BUTTON = (
    '<button class="disconnect-btn" hx-post="/disconnect" '
    'hx-target="#status-box">Disconnect</button>'
)


def format_uptime(delta: timedelta) -> str:
    """Render a duration like Go's ``time.Duration``: ``1h2m3s``, ``4m0s``, ``7s``."""
    total = int(delta.total_seconds())
    hours, rem = divmod(total, 3600)
    minutes, seconds = divmod(rem, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


def render_status(state: ManagerState, now: datetime | None = None) -> str:
    status = state.status
    parts = [
        f'<div class="status-text status-{status.css_class}">{escape(status.value)}</div>'
    ]

    uptime = state.uptime(now)
    if uptime is not None:
        parts.append(f"<div>Connected for: {format_uptime(uptime)}</div>")

    if status is ConnectionStatus.WAITING_FOR_PAIRING and state.pairing_payload:
        encoded = base64.b64encode(state.pairing_payload).decode("ascii")
        parts.append("<p>Scan this QR code with WhatsApp:</p>")
        parts.append(f'<img src="data:{PAIRING_MEDIA_TYPE};base64,{encoded}" alt="QR Code">')

    actions = []
    if status in (ConnectionStatus.DISCONNECTED, ConnectionStatus.CONNECTION_FAILED):
        actions.append(_CONNECT_BUTTON)
    if status is ConnectionStatus.CONNECTED:
        actions.append(_DISCONNECT_BUTTON)
    parts.append(f'<div class="actions">{"".join(actions)}</div>')

    return "\n".join(parts)
