"""Builders for raw websocket frames as the Tempest service sends them."""

from __future__ import annotations

import json
from typing import Any, Sequence

# obs_st reading array for 2024-01-01 12:00:00 UTC.
OBSERVATION_VALUES: list[Any] = [
    1704110400,  # timestamp
    0.5,  # wind lull
    2.3,  # wind avg
    4.1,  # wind gust
    180,  # wind direction
    3,  # wind sample interval
    1013.2,  # pressure
    21.5,  # temperature
    65,  # humidity
    12000,  # illuminance
    2.1,  # uv
    250,  # solar radiation
    0.0,  # precip accumulated
    0,  # precip type
    0,  # lightning distance
    0,  # lightning count
    2.6,  # battery
    1,  # report interval
    0.0,  # daily rain
]


def observation_frame(values: Sequence[Any] = OBSERVATION_VALUES, **extra: Any) -> str:
    return json.dumps({"type": "obs_st", "device_id": 5002, "obs": [list(values)], **extra})


def rapid_wind_frame(timestamp: int, speed: float, direction: int) -> str:
    return json.dumps({"type": "rapid_wind", "device_id": 5002, "ob": [timestamp, speed, direction]})


def precipitation_frame(timestamp: int | None = None) -> str:
    payload: dict[str, Any] = {"type": "evt_precip", "device_id": 5002}
    if timestamp is not None:
        payload["evt"] = [timestamp]
    return json.dumps(payload)


def strike_frame(timestamp: int | None = None, distance: float | None = None) -> str:
    payload: dict[str, Any] = {"type": "evt_strike", "device_id": 5002}
    if timestamp is not None:
        evt: list[Any] = [timestamp]
        if distance is not None:
            evt.extend([distance, 1500])
        payload["evt"] = evt
    return json.dumps(payload)


def ack_frame(request_id: str) -> str:
    return json.dumps({"type": "ack", "id": request_id})
