"""Argument parsing for the tempest-live CLI."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Mapping, Optional

from .commands import handle_dashboard, handle_stations


def build_parser(config: Optional[Mapping[str, Any]] = None) -> argparse.ArgumentParser:
    config = dict(config or {})
    logging_cfg = dict(config.get("logging", {}))

    parser = argparse.ArgumentParser(
        prog="tempest-live",
        description="Live WeatherFlow Tempest dashboard in the terminal",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        type=Path,
        default=None,
        help="Path to the pyproject.toml (or its directory) to load.",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default=logging_cfg.get("level", "info"),
        help="Logging level (e.g. debug, info, warning).",
    )
    parser.add_argument(
        "--log-output",
        dest="log_output",
        default=logging_cfg.get("output", "stderr"),
        help="Logging destination (stdout, stderr or a file path).",
    )
    parser.add_argument(
        "--log-format",
        dest="log_format",
        choices=("json", "text"),
        default=logging_cfg.get("format", "json"),
        help="Logging formatter (json or text).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    dashboard_parser = subparsers.add_parser(
        "dashboard",
        help="Stream live observations and render a refreshing dashboard.",
    )
    _add_token_argument(dashboard_parser)
    dashboard_parser.add_argument(
        "--station",
        dest="station",
        type=int,
        default=None,
        help="Station identifier (defaults to the first station of the account).",
    )
    dashboard_parser.add_argument(
        "--fahrenheit", action="store_true", default=None, help="Show temperatures in °F."
    )
    dashboard_parser.add_argument(
        "--mph", action="store_true", default=None, help="Show wind speeds in mph."
    )
    dashboard_parser.add_argument(
        "--inches", action="store_true", default=None, help="Show rain amounts in inches."
    )
    dashboard_parser.add_argument(
        "--miles", action="store_true", default=None, help="Show distances in miles."
    )
    dashboard_parser.set_defaults(handler=handle_dashboard)

    stations_parser = subparsers.add_parser(
        "stations",
        help="List the stations visible to the API token.",
    )
    _add_token_argument(stations_parser)
    stations_parser.add_argument(
        "--json",
        dest="as_json",
        action="store_true",
        help="Emit the station list as JSON.",
    )
    stations_parser.set_defaults(handler=handle_stations)

    return parser


def _add_token_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--token",
        dest="token",
        default=None,
        help="WeatherFlow API token (overrides TEMPEST_API_TOKEN and the config file).",
    )
