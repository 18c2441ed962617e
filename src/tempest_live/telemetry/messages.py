"""Messages exchanged through the dashboard mailbox.

Telemetry records from :mod:`tempest_live.telemetry.records` travel through
the same mailbox; the types below carry connection lifecycle and timer
notifications.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

__all__ = ["ConnectionLost", "Connected", "ReconnectDue", "Tick"]


@dataclass(frozen=True, slots=True)
class Connected:
    """The websocket of ``session_id`` is open and subscribed."""

    session_id: int
    connected_at: datetime


@dataclass(frozen=True, slots=True)
class ConnectionLost:
    """Setup or transport failure reported by the read task of ``session_id``.

    ``stage`` is ``"dial"``, ``"handshake"`` or ``"read"``.
    """

    session_id: int
    stage: str
    error: str


@dataclass(frozen=True, slots=True)
class ReconnectDue:
    """Reconnect timer fired for retry number ``attempt``."""

    attempt: int


@dataclass(frozen=True, slots=True)
class Tick:
    at: datetime
