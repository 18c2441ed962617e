from __future__ import annotations

import logging
import sys
from pathlib import Path
from textwrap import dedent
from typing import Any, Callable, Iterator

import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))


def write_pyproject(directory: Path, contents: str) -> Path:
    """Persist a ``pyproject.toml`` under ``directory`` and return its path."""

    payload = dedent(contents).lstrip()
    target = directory / "pyproject.toml"
    target.write_text(payload, encoding="utf8")
    return target


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TEMPEST_API_TOKEN", raising=False)
    monkeypatch.delenv("TEMPEST_LIVE_CONFIG", raising=False)


@pytest.fixture
def station_payload() -> Callable[..., dict[str, Any]]:
    def _build(
        station_id: int = 1001,
        *,
        name: str = "Backyard",
        timezone: str = "America/Chicago",
        devices: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        if devices is None:
            devices = [
                {"device_id": 5001, "device_type": "HB"},
                {"device_id": 5002, "device_type": "ST"},
            ]
        return {
            "station_id": station_id,
            "name": name,
            "timezone": timezone,
            "devices": devices,
        }

    return _build


@pytest.fixture
def restore_logging() -> Iterator[None]:
    """Remove root handlers installed by the test and restore the level."""

    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
