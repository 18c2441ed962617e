"""Websocket telemetry: frame decoding, read tasks and connection lifecycle."""

from .connection import (
    ConnectionManager,
    ConnectionState,
    ConnectionStatus,
    MAX_RECONNECT_ATTEMPTS,
    RECONNECT_DELAY,
    StreamSettings,
)
from .decoder import FrameDecodeError, decode_frame
from .messages import ConnectionLost, Connected, ReconnectDue, Tick
from .read_task import STALE_TIMEOUT, ReadTask
from .records import (
    Acknowledgement,
    EventCategory,
    Frame,
    ObservationRecord,
    RapidWindSample,
    Unrecognized,
    WeatherEvent,
)

__all__ = [
    "Acknowledgement",
    "ConnectionLost",
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStatus",
    "Connected",
    "EventCategory",
    "Frame",
    "FrameDecodeError",
    "MAX_RECONNECT_ATTEMPTS",
    "ObservationRecord",
    "RECONNECT_DELAY",
    "RapidWindSample",
    "ReadTask",
    "ReconnectDue",
    "STALE_TIMEOUT",
    "StreamSettings",
    "Tick",
    "Unrecognized",
    "WeatherEvent",
    "decode_frame",
]
