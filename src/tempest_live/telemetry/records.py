"""Typed records produced from Tempest websocket frames."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

__all__ = [
    "Acknowledgement",
    "EventCategory",
    "Frame",
    "ObservationRecord",
    "RapidWindSample",
    "Unrecognized",
    "WeatherEvent",
    "ZERO_TIME",
]


ZERO_TIME = datetime.fromtimestamp(0, tz=timezone.utc)


class EventCategory(str, Enum):
    PRECIPITATION_START = "precipitation-start"
    LIGHTNING = "lightning"


@dataclass(frozen=True, slots=True)
class ObservationRecord:
    """Point-in-time reading decoded from an ``obs_st`` frame.

    Speeds are m/s, pressure is millibar, temperature is Celsius and rain
    amounts are millimetres, as delivered by the station.
    """

    timestamp: datetime = ZERO_TIME
    wind_lull: float = 0.0
    wind_avg: float = 0.0
    wind_gust: float = 0.0
    wind_direction: int = 0
    wind_sample_interval: float = 0.0
    pressure: float = 0.0
    temperature: float = 0.0
    humidity: float = 0.0
    illuminance: float = 0.0
    uv_index: float = 0.0
    solar_radiation: float = 0.0
    precip_accum: float = 0.0
    precip_type: int = 0
    lightning_distance: float = 0.0
    lightning_count: int = 0
    battery: float = 0.0
    report_interval: float = 0.0
    daily_rain: float = 0.0


@dataclass(frozen=True, slots=True)
class RapidWindSample:
    """Three second wind sample from a ``rapid_wind`` frame."""

    timestamp: datetime
    wind_speed: float
    wind_direction: int


@dataclass(frozen=True, slots=True)
class WeatherEvent:
    timestamp: datetime
    category: EventCategory
    detail: str


@dataclass(frozen=True, slots=True)
class Acknowledgement:
    """Server acknowledgement of a ``listen_*`` request."""

    request_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Unrecognized:
    """Frame whose envelope is malformed or carries an unknown type tag."""

    type: Optional[str] = None


Frame = Union[ObservationRecord, RapidWindSample, WeatherEvent, Acknowledgement, Unrecognized]
