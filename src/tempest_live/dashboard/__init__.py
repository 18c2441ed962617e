"""Dashboard state, consumer loop and text rendering."""

from .loop import DashboardLoop
from .render import UnitPreferences, degrees_to_cardinal, render_dashboard
from .state import EVENT_LOG_SIZE, WIND_HISTORY_SIZE, DashboardSnapshot, StateAggregator

__all__ = [
    "DashboardLoop",
    "DashboardSnapshot",
    "EVENT_LOG_SIZE",
    "StateAggregator",
    "UnitPreferences",
    "WIND_HISTORY_SIZE",
    "degrees_to_cardinal",
    "render_dashboard",
]
