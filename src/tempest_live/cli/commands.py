"""Handlers for the ``dashboard`` and ``stations`` subcommands."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any, Mapping, Optional

from ..dashboard.loop import DashboardLoop
from ..dashboard.render import UnitPreferences, render_dashboard
from ..dashboard.state import DashboardSnapshot
from ..stations import StationLookupError, StationMetadata, fetch_station_metadata, list_stations
from ..telemetry.connection import StreamSettings
from .errors import CliError
from .io import resolve_station_id, resolve_token

__all__ = ["handle_dashboard", "handle_stations", "resolve_units"]


logger = logging.getLogger(__name__)

CLEAR_SCREEN = "\x1b[H\x1b[2J"


def _lookup_error(exc: StationLookupError) -> CliError:
    if exc.status_code in (401, 403):
        category = "auth"
    elif exc.status_code == 404:
        category = "not_found"
    else:
        category = "runtime"
    return CliError(str(exc), category=category, context={"status_code": exc.status_code})


def resolve_units(namespace: argparse.Namespace, config: Mapping[str, Any]) -> UnitPreferences:
    """Combine the ``[units]`` table with command line flags."""

    configured = UnitPreferences.from_mapping(config.get("units"))
    flags = {
        name: getattr(namespace, name, None)
        for name in ("fahrenheit", "mph", "inches", "miles")
    }
    return UnitPreferences(
        **{
            name: bool(flag) if flag is not None else getattr(configured, name)
            for name, flag in flags.items()
        }
    )


class _Screen:
    """Redraws the dashboard in place on every tick."""

    def __init__(
        self,
        metadata: StationMetadata,
        units: UnitPreferences,
        settings: StreamSettings,
        stream: IO[str],
    ) -> None:
        self.metadata = metadata
        self.units = units
        self.settings = settings
        self.stream = stream

    def draw(self, snapshot: DashboardSnapshot) -> None:
        frame = render_dashboard(
            snapshot,
            self.metadata,
            self.units,
            datetime.now(timezone.utc),
            max_attempts=self.settings.max_reconnect_attempts,
        )
        self.stream.write(CLEAR_SCREEN + frame + "\n")
        self.stream.flush()


def handle_dashboard(
    namespace: argparse.Namespace,
    *,
    config: Mapping[str, Any],
    stream: Optional[IO[str]] = None,
) -> str:
    token = resolve_token(getattr(namespace, "token", None), config)
    station_id = resolve_station_id(getattr(namespace, "station", None), config)
    try:
        settings = StreamSettings.from_mapping(config.get("stream"))
    except ValueError as exc:
        raise CliError(str(exc), category="usage") from exc
    units = resolve_units(namespace, config)

    try:
        metadata = fetch_station_metadata(token, station_id)
    except StationLookupError as exc:
        raise _lookup_error(exc) from exc

    screen = _Screen(metadata, units, settings, stream or sys.stdout)
    dashboard = DashboardLoop(
        token=token,
        device_id=metadata.device_id,
        settings=settings,
        on_tick=screen.draw,
    )
    logger.info(
        "Starting dashboard.",
        extra={"event": "dashboard.start", "station_id": metadata.station_id},
    )
    try:
        asyncio.run(dashboard.run())
    except KeyboardInterrupt:
        logger.info("Dashboard interrupted.", extra={"event": "dashboard.interrupt"})
    return ""


def handle_stations(
    namespace: argparse.Namespace,
    *,
    config: Mapping[str, Any],
) -> str:
    token = resolve_token(getattr(namespace, "token", None), config)
    try:
        stations = list_stations(token)
    except StationLookupError as exc:
        raise _lookup_error(exc) from exc

    if getattr(namespace, "as_json", False):
        return json.dumps([station.as_dict() for station in stations], indent=2)
    if not stations:
        return "No stations found."
    lines = [f"{'STATION':>8}  {'DEVICE':>8}  {'TIMEZONE':<24}  NAME"]
    for station in stations:
        lines.append(
            f"{station.station_id:>8}  {station.device_id:>8}  "
            f"{station.timezone:<24}  {station.station_name}"
        )
    return "\n".join(lines)
