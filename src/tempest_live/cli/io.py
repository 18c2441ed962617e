"""Configuration and credential loading for the tempest-live CLI."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from ..configuration import load_project_config, resolve_pyproject_path, tomllib
from .errors import CliError

CONFIG_ENV_VAR = "TEMPEST_LIVE_CONFIG"
TOKEN_ENV_VAR = "TEMPEST_API_TOKEN"

__all__ = ["CONFIG_ENV_VAR", "TOKEN_ENV_VAR", "load_cli_config", "resolve_station_id", "resolve_token"]


def _iter_unique_paths(candidates: List[Path]) -> List[Path]:
    seen: Dict[Path, None] = {}
    ordered: List[Path] = []
    for candidate in candidates:
        resolved = candidate.expanduser().resolve(strict=False)
        if resolved in seen:
            continue
        seen[resolved] = None
        ordered.append(resolved)
    return ordered


def _load(candidate: Path) -> Optional[Dict[str, Any]]:
    try:
        loaded = load_project_config(candidate)
    except tomllib.TOMLDecodeError as exc:
        raise CliError(
            f"Invalid configuration file {candidate}: {exc}",
            category="usage",
            context={"path": candidate},
        ) from exc
    except OSError as exc:
        raise CliError(
            f"Unable to read configuration file {candidate}: {exc}",
            category="io",
            context={"path": candidate},
        ) from exc
    if not loaded:
        return None
    payload, source = loaded
    data = {str(key): value for key, value in payload.items()}
    data["_config_path"] = str(source)
    return data


def load_cli_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load CLI defaults from ``pyproject.toml``.

    Lookup order: ``path``, the :data:`CONFIG_ENV_VAR` environment variable,
    then the working directory.  Without any file an empty configuration is
    returned.
    """

    bases: List[Path] = []
    if path is not None:
        bases.append(path)
    env_config = os.environ.get(CONFIG_ENV_VAR)
    if env_config:
        bases.append(Path(env_config))
    bases.append(Path.cwd())

    candidates = [
        candidate
        for candidate in (resolve_pyproject_path(base) for base in bases)
        if candidate is not None
    ]
    for candidate in _iter_unique_paths(candidates):
        loaded = _load(candidate)
        if loaded is not None:
            return loaded
    return {"_config_path": None}


def resolve_token(explicit: Optional[str], config: Mapping[str, Any]) -> str:
    """Return the API token from ``--token``, the environment or the config."""

    for candidate in (explicit, os.environ.get(TOKEN_ENV_VAR), config.get("token")):
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    raise CliError(
        f"No API token configured. Pass --token, set {TOKEN_ENV_VAR} "
        "or add 'token' to [tool.tempest_live].",
        category="auth",
    )


def resolve_station_id(explicit: Optional[int], config: Mapping[str, Any]) -> Optional[int]:
    if explicit is not None:
        return explicit
    configured = config.get("station_id")
    if configured is None:
        return None
    try:
        return int(configured)
    except (TypeError, ValueError):
        raise CliError(
            f"station_id must be an integer, got {configured!r}",
            category="usage",
        ) from None
