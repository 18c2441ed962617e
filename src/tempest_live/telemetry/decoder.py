"""Decoding of raw Tempest websocket frames into typed records.

Frames are dispatched on the ``type`` tag of their JSON envelope.  Malformed
envelopes and unknown tags are not errors: the websocket carries message
types this client does not care about, so they come back as
:class:`~tempest_live.telemetry.records.Unrecognized`.  A recognised frame
whose body cannot be used raises :class:`FrameDecodeError`.

Observation arrays are versioned upstream and may grow, so they are decoded
by position (see :data:`OBS_ST_FIELDS`); positions beyond the received
length resolve to zero instead of failing.
"""

from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Sequence

from .records import (
    Acknowledgement,
    EventCategory,
    Frame,
    ObservationRecord,
    RapidWindSample,
    Unrecognized,
    WeatherEvent,
    ZERO_TIME,
)

__all__ = [
    "FrameDecodeError",
    "OBS_ST_FIELDS",
    "RAPID_WIND_MIN_FIELDS",
    "decode_frame",
    "parse_observation",
    "parse_rapid_wind",
]


Clock = Callable[[], datetime]


class FrameDecodeError(ValueError):
    """Raised when a recognised frame carries an unusable body."""


# Positions of the ``obs_st`` readings.  Index 19 onwards is reserved.
OBS_ST_FIELDS: tuple[str, ...] = (
    "timestamp",
    "wind_lull",
    "wind_avg",
    "wind_gust",
    "wind_direction",
    "wind_sample_interval",
    "pressure",
    "temperature",
    "humidity",
    "illuminance",
    "uv_index",
    "solar_radiation",
    "precip_accum",
    "precip_type",
    "lightning_distance",
    "lightning_count",
    "battery",
    "report_interval",
    "daily_rain",
)

_INTEGER_FIELDS = frozenset({"wind_direction", "precip_type", "lightning_count"})

RAPID_WIND_MIN_FIELDS = 3

PRECIPITATION_DETAIL = "Rain started"
LIGHTNING_DETAIL = "Lightning detected"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _reading(values: Sequence[Any], index: int) -> float:
    if index >= len(values):
        return 0.0
    value = values[index]
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FrameDecodeError(f"non-numeric reading at position {index}: {value!r}")
    try:
        numeric = float(value)
    except OverflowError:
        raise FrameDecodeError(f"reading out of range at position {index}") from None
    if not math.isfinite(numeric):
        raise FrameDecodeError(f"non-finite reading at position {index}")
    return numeric


def _timestamp(epoch: float) -> datetime:
    if epoch <= 0.0:
        return ZERO_TIME
    try:
        return datetime.fromtimestamp(int(epoch), tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise FrameDecodeError(f"timestamp out of range: {epoch!r}") from exc


def _as_list(payload: Mapping[str, Any], key: str) -> list[Any]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise FrameDecodeError(f"'{key}' must be an array")
    return value


def parse_observation(values: Sequence[Any]) -> ObservationRecord:
    """Return an :class:`ObservationRecord` from an ``obs_st`` reading array."""

    fields: dict[str, Any] = {}
    for index, name in enumerate(OBS_ST_FIELDS):
        numeric = _reading(values, index)
        if name == "timestamp":
            fields[name] = _timestamp(numeric)
        elif name in _INTEGER_FIELDS:
            fields[name] = int(numeric)
        else:
            fields[name] = numeric
    return ObservationRecord(**fields)


def parse_rapid_wind(values: Sequence[Any]) -> RapidWindSample:
    """Return a :class:`RapidWindSample` from a ``rapid_wind`` ``ob`` array."""

    if len(values) < RAPID_WIND_MIN_FIELDS:
        raise FrameDecodeError(
            f"rapid_wind needs {RAPID_WIND_MIN_FIELDS} fields, got {len(values)}"
        )
    return RapidWindSample(
        timestamp=_timestamp(_reading(values, 0)),
        wind_speed=_reading(values, 1),
        wind_direction=int(_reading(values, 2)),
    )


def _decode_observation(payload: Mapping[str, Any]) -> ObservationRecord:
    rows = _as_list(payload, "obs")
    if not rows:
        raise FrameDecodeError("obs_st frame without readings")
    first = rows[0]
    if not isinstance(first, list):
        raise FrameDecodeError("obs_st readings must be an array")
    return parse_observation(first)


def _decode_precipitation(payload: Mapping[str, Any], clock: Clock) -> WeatherEvent:
    values = _as_list(payload, "evt")
    timestamp = _timestamp(_reading(values, 0)) if values else clock()
    return WeatherEvent(
        timestamp=timestamp,
        category=EventCategory.PRECIPITATION_START,
        detail=PRECIPITATION_DETAIL,
    )


def _decode_strike(payload: Mapping[str, Any], clock: Clock) -> WeatherEvent:
    values = _as_list(payload, "evt")
    timestamp = _timestamp(_reading(values, 0)) if values else clock()
    detail = LIGHTNING_DETAIL
    if len(values) > 1 and values[1] is not None:
        detail = f"Lightning {_reading(values, 1):.0f}km away"
    return WeatherEvent(
        timestamp=timestamp,
        category=EventCategory.LIGHTNING,
        detail=detail,
    )


def decode_frame(raw: str | bytes, *, clock: Optional[Clock] = None) -> Frame:
    """Decode ``raw`` into one of the :data:`~tempest_live.telemetry.records.Frame` types.

    ``clock`` supplies "now" for events that arrive without a timestamp.
    """

    try:
        payload = json.loads(raw)
    except (TypeError, ValueError, RecursionError):
        return Unrecognized()
    if not isinstance(payload, dict):
        return Unrecognized()
    frame_type = payload.get("type")
    if not isinstance(frame_type, str):
        return Unrecognized()

    now = clock or _utc_now
    if frame_type == "obs_st":
        return _decode_observation(payload)
    if frame_type == "rapid_wind":
        return parse_rapid_wind(_as_list(payload, "ob"))
    if frame_type == "evt_precip":
        return _decode_precipitation(payload, now)
    if frame_type == "evt_strike":
        return _decode_strike(payload, now)
    if frame_type == "ack":
        request_id = payload.get("id")
        return Acknowledgement(request_id=request_id if isinstance(request_id, str) else None)
    return Unrecognized(type=frame_type)
