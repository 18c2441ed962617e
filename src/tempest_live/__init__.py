"""Top-level package for tempest-live.

Streams WeatherFlow Tempest telemetry over the websocket API, keeps a small
bounded working set of recent readings and renders it as a live text
dashboard.
"""

from ._version import __version__
from .dashboard import (
    DashboardLoop,
    DashboardSnapshot,
    StateAggregator,
    UnitPreferences,
    render_dashboard,
)
from .stations import StationLookupError, StationMetadata, fetch_station_metadata, list_stations
from .telemetry import (
    ConnectionManager,
    ConnectionState,
    ConnectionStatus,
    FrameDecodeError,
    StreamSettings,
    decode_frame,
)

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStatus",
    "DashboardLoop",
    "DashboardSnapshot",
    "FrameDecodeError",
    "StateAggregator",
    "StationLookupError",
    "StationMetadata",
    "StreamSettings",
    "UnitPreferences",
    "__version__",
    "decode_frame",
    "fetch_station_metadata",
    "list_stations",
    "render_dashboard",
]
