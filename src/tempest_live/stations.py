"""Station metadata lookup through the WeatherFlow REST API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

import requests

__all__ = [
    "STATIONS_URL",
    "StationLookupError",
    "StationMetadata",
    "TEMPEST_DEVICE_TYPE",
    "fetch_station_metadata",
    "list_stations",
]


logger = logging.getLogger(__name__)


STATIONS_URL = "https://swd.weatherflow.com/swd/rest/stations"
TEMPEST_DEVICE_TYPE = "ST"
DEFAULT_TIMEOUT = 10.0


class StationLookupError(RuntimeError):
    """Raised when station metadata cannot be retrieved or understood.

    ``status_code`` holds the HTTP status when the API answered with an error.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True, slots=True)
class StationMetadata:
    station_id: int
    device_id: int
    station_name: str
    timezone: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "station_id": self.station_id,
            "device_id": self.device_id,
            "station_name": self.station_name,
            "timezone": self.timezone,
        }


def _request_stations(
    token: str,
    station_id: Optional[int],
    *,
    session: Any,
    timeout: float,
) -> Sequence[Mapping[str, Any]]:
    url = STATIONS_URL if station_id is None else f"{STATIONS_URL}/{int(station_id)}"
    client = session if session is not None else requests
    try:
        response = client.get(url, params={"token": token}, timeout=timeout)
    except requests.RequestException as exc:
        raise StationLookupError(f"station request failed: {exc}") from exc
    if response.status_code in (401, 403):
        raise StationLookupError(
            "station request was rejected: invalid API token",
            status_code=response.status_code,
        )
    if response.status_code != 200:
        raise StationLookupError(
            f"station request failed with HTTP {response.status_code}",
            status_code=response.status_code,
        )
    try:
        payload = response.json()
    except ValueError as exc:
        raise StationLookupError("station response is not valid JSON") from exc
    if not isinstance(payload, Mapping):
        raise StationLookupError("station response must be a JSON object")
    stations = payload.get("stations")
    if not isinstance(stations, list):
        raise StationLookupError("station response does not list any stations")
    return [station for station in stations if isinstance(station, Mapping)]


def _station_metadata(station: Mapping[str, Any]) -> StationMetadata:
    devices = [device for device in station.get("devices") or () if isinstance(device, Mapping)]
    if not devices:
        raise StationLookupError(
            f"station {station.get('station_id')!r} has no devices"
        )
    device = next(
        (item for item in devices if item.get("device_type") == TEMPEST_DEVICE_TYPE),
        devices[0],
    )
    try:
        return StationMetadata(
            station_id=int(station["station_id"]),
            device_id=int(device["device_id"]),
            station_name=str(station.get("name") or ""),
            timezone=str(station.get("timezone") or "UTC"),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise StationLookupError(f"malformed station record: {exc}") from exc


def list_stations(
    token: str,
    *,
    session: Any = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[StationMetadata]:
    """Return metadata for every station visible to ``token``.

    Stations without devices are skipped.
    """

    stations = _request_stations(token, None, session=session, timeout=timeout)
    result: list[StationMetadata] = []
    for station in stations:
        try:
            result.append(_station_metadata(station))
        except StationLookupError as exc:
            logger.warning(
                "Skipping unusable station record.",
                extra={"event": "stations.skip", "error": str(exc)},
            )
    return result


def fetch_station_metadata(
    token: str,
    station_id: Optional[int] = None,
    *,
    session: Any = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> StationMetadata:
    """Resolve the station to stream from.

    ``station_id`` selects a station; without it the first station of the
    account is used.  The Tempest device (``device_type == "ST"``) is
    preferred, otherwise the first device of the station.  Any failure
    raises :class:`StationLookupError`.
    """

    stations = _request_stations(token, station_id, session=session, timeout=timeout)
    if station_id is not None:
        stations = [
            station for station in stations if station.get("station_id") == int(station_id)
        ] or stations
    if not stations:
        raise StationLookupError("no stations found for this API token")
    metadata = _station_metadata(stations[0])
    logger.info(
        "Resolved station metadata.",
        extra={
            "event": "stations.resolved",
            "station_id": metadata.station_id,
            "device_id": metadata.device_id,
        },
    )
    return metadata
