"""Plain-text rendering of :class:`~tempest_live.dashboard.state.DashboardSnapshot`."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..stations import StationMetadata
from ..telemetry.connection import MAX_RECONNECT_ATTEMPTS
from ..telemetry.records import ObservationRecord
from ..visualization.sparkline import render_sparkline
from .state import DashboardSnapshot

__all__ = [
    "DEFAULT_WIDTH",
    "UnitPreferences",
    "degrees_to_cardinal",
    "format_age",
    "infer_condition",
    "render_dashboard",
    "render_status_bar",
]


DEFAULT_WIDTH = 80

_CARDINALS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")


@dataclass(frozen=True, slots=True)
class UnitPreferences:
    """Display units; the stream always delivers metric values."""

    fahrenheit: bool = False
    mph: bool = False
    inches: bool = False
    miles: bool = False

    @classmethod
    def from_mapping(cls, payload: Optional[Mapping[str, Any]]) -> "UnitPreferences":
        payload = payload or {}
        return cls(
            fahrenheit=bool(payload.get("fahrenheit", False)),
            mph=bool(payload.get("mph", False)),
            inches=bool(payload.get("inches", False)),
            miles=bool(payload.get("miles", False)),
        )

    def temperature(self, celsius: float) -> float:
        return celsius * 9.0 / 5.0 + 32.0 if self.fahrenheit else celsius

    def wind(self, metres_per_second: float) -> float:
        return metres_per_second * 2.23694 if self.mph else metres_per_second

    def precipitation(self, millimetres: float) -> float:
        return millimetres / 25.4 if self.inches else millimetres

    def distance(self, kilometres: float) -> float:
        return kilometres * 0.621371 if self.miles else kilometres

    @property
    def temperature_label(self) -> str:
        return "F" if self.fahrenheit else "C"

    @property
    def wind_label(self) -> str:
        return "mph" if self.mph else "m/s"

    @property
    def precipitation_label(self) -> str:
        return "in" if self.inches else "mm"

    @property
    def distance_label(self) -> str:
        return "mi" if self.miles else "km"


def degrees_to_cardinal(degrees: int) -> str:
    """Map a bearing to one of the eight compass points."""

    # Halves round up: 22.5 degrees is NE.
    return _CARDINALS[math.floor(degrees / 45.0 + 0.5) % 8]


def infer_condition(observation: Optional[ObservationRecord]) -> str:
    # obs_st carries no condition text; guess one from the sensors.
    if observation is None:
        return "Unknown"
    if observation.lightning_count > 0:
        return "Thunderstorm"
    if observation.precip_accum > 0 and observation.temperature <= 0:
        return "Snow"
    if observation.precip_accum > 0:
        return "Rain"
    if observation.solar_radiation < 10 and observation.illuminance < 100:
        return "Clear Night"
    if observation.illuminance > 50000:
        return "Clear"
    if observation.solar_radiation > 200:
        return "Partly Cloudy"
    return "Cloudy"


def format_age(age: timedelta) -> str:
    """Format ``age`` truncated to whole seconds, e.g. ``"1h2m5s"``."""

    seconds = max(0, int(age.total_seconds()))
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


def _station_zone(metadata: Optional[StationMetadata]) -> Optional[tzinfo]:
    if metadata is None or not metadata.timezone:
        return None
    try:
        return ZoneInfo(metadata.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def _rule(width: int) -> str:
    return "─" * width


def _header(snapshot: DashboardSnapshot, metadata: Optional[StationMetadata], width: int) -> str:
    status = snapshot.connection
    indicator = "[LIVE]" if status.connected else "[CONNECTING...]"
    if snapshot.error and not status.reconnecting:
        indicator = "[DISCONNECTED]"
    if metadata is not None:
        title = f"{metadata.station_name} ({metadata.timezone})"
    else:
        title = "Tempest"
    padding = max(1, width - len(title) - len(indicator))
    return title + " " * padding + indicator


def _conditions(snapshot: DashboardSnapshot, units: UnitPreferences) -> list[str]:
    observation = snapshot.observation
    if observation is None:
        if snapshot.error:
            return [f"Error: {snapshot.error}"]
        return ["Waiting for observation data..."]
    temperature = units.temperature(observation.temperature)
    # Dew point approximation, good enough above 50% humidity.
    dew_point = units.temperature(observation.temperature - (100 - observation.humidity) / 5)
    lines = [
        f"{temperature:.1f}°{units.temperature_label}  {infer_condition(observation)}",
        f"Humidity: {observation.humidity:.0f}%    "
        f"Pressure: {observation.pressure:.0f} mb    "
        f"UV: {observation.uv_index:.0f}",
        f"Dew Point: {dew_point:.1f}°{units.temperature_label}    "
        f"Rain: {units.precipitation(observation.daily_rain):.1f} {units.precipitation_label}",
    ]
    if observation.lightning_count > 0:
        distance = units.distance(observation.lightning_distance)
        lines.append(
            f"Lightning: {observation.lightning_count} strikes, "
            f"last {distance:.0f} {units.distance_label} away"
        )
    return lines


def _wind(snapshot: DashboardSnapshot, units: UnitPreferences) -> list[str]:
    direction = 0
    speed = gust = lull = 0.0
    observation = snapshot.observation
    if observation is not None:
        direction = observation.wind_direction
        speed = units.wind(observation.wind_avg)
        gust = units.wind(observation.wind_gust)
        lull = units.wind(observation.wind_lull)
    if snapshot.rapid_wind is not None:
        direction = snapshot.rapid_wind.wind_direction
        speed = units.wind(snapshot.rapid_wind.wind_speed)
    label = units.wind_label
    lines = [
        "WIND",
        f"Speed: {speed:.1f} {label}   Gust: {gust:.1f} {label}",
        f"Lull:  {lull:.1f} {label}   Dir:  {degrees_to_cardinal(direction)} {direction}°",
    ]
    sparkline = render_sparkline(snapshot.wind_speeds)
    if sparkline:
        lines.append(sparkline)
    return lines


def _events(snapshot: DashboardSnapshot, zone: Optional[tzinfo]) -> list[str]:
    if not snapshot.events:
        return ["EVENTS", "No recent events"]
    lines = ["EVENTS"]
    for event in snapshot.events:
        stamp = event.timestamp.astimezone(zone) if zone is not None else event.timestamp
        lines.append(f"{stamp:%H:%M}  {event.detail}")
    return lines


def render_status_bar(
    snapshot: DashboardSnapshot,
    now: datetime,
    *,
    width: int = DEFAULT_WIDTH,
    max_attempts: int = MAX_RECONNECT_ATTEMPTS,
) -> str:
    status = snapshot.connection
    if snapshot.last_update is None:
        left = "Waiting for data..."
    else:
        left = f"Last updated: {format_age(now - snapshot.last_update)} ago"
    if status.reconnecting:
        left += f" (reconnecting {status.reconnect_attempts}/{max_attempts}...)"
    if status.exhausted:
        left += " | reconnect budget exhausted"
    if snapshot.error and not status.reconnecting:
        left += f" | Error: {snapshot.error}"
    right = "Press Ctrl+C to quit"
    padding = max(1, width - len(left) - len(right))
    return left + " " * padding + right


def render_dashboard(
    snapshot: DashboardSnapshot,
    metadata: Optional[StationMetadata] = None,
    units: Optional[UnitPreferences] = None,
    now: Optional[datetime] = None,
    *,
    width: int = DEFAULT_WIDTH,
    max_attempts: int = MAX_RECONNECT_ATTEMPTS,
) -> str:
    """Render the header, conditions, wind, events and status panels."""

    units = units or UnitPreferences()
    now = now or datetime.now(timezone.utc)
    rule = _rule(width)
    sections = [
        [_header(snapshot, metadata, width)],
        _conditions(snapshot, units),
        _wind(snapshot, units),
        _events(snapshot, _station_zone(metadata)),
        [render_status_bar(snapshot, now, width=width, max_attempts=max_attempts)],
    ]
    lines: list[str] = []
    for section in sections:
        lines.append(rule)
        lines.extend(section)
    return "\n".join(lines)
