"""Package version lookup."""

from __future__ import annotations

import os
import re
from importlib import metadata
from pathlib import Path

from packaging.version import InvalidVersion, Version

DISTRIBUTION = "tempest-live"
OVERRIDE_ENV_VAR = "PYTHON_SEMANTIC_RELEASE_VERSION"

# src/tempest_live/_version.py -> repository root
CHANGELOG_PATH = Path(__file__).resolve().parents[2] / "CHANGELOG.md"

_RELEASE_HEADING = re.compile(r"^## v(\d+\.\d+\.\d+)\b", re.MULTILINE)


def changelog_version(path: Path = CHANGELOG_PATH) -> str:
    """Return the newest ``## vX.Y.Z`` heading of a source checkout's changelog."""

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise RuntimeError(f"{DISTRIBUTION} is not installed and {path} is missing") from None
    match = _RELEASE_HEADING.search(text)
    if match is None:
        raise RuntimeError(f"no release heading found in {path}")
    return match.group(1)


def resolve_version() -> str:
    raw = os.environ.get(OVERRIDE_ENV_VAR)
    if not raw:
        try:
            raw = metadata.version(DISTRIBUTION)
        except metadata.PackageNotFoundError:
            raw = changelog_version()
    try:
        release = Version(raw).release
    except InvalidVersion as exc:
        raise RuntimeError(f"invalid {DISTRIBUTION} version {raw!r}") from exc
    if len(release) != 3:
        raise RuntimeError(f"{DISTRIBUTION} version must be MAJOR.MINOR.PATCH, got {raw!r}")
    return raw


__version__ = resolve_version()

__all__ = ["__version__", "changelog_version", "resolve_version"]
