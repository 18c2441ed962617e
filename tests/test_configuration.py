from __future__ import annotations

from pathlib import Path

import pytest

from tempest_live.cli.errors import CliError
from tempest_live.cli.io import (
    CONFIG_ENV_VAR,
    TOKEN_ENV_VAR,
    load_cli_config,
    resolve_station_id,
    resolve_token,
)
from tempest_live.configuration import load_project_config

from tests.conftest import write_pyproject


PROJECT = """
    [project]
    name = "weather-station"

    [tool.tempest_live]
    token = "from-file"
    station_id = 1001

    [tool.tempest_live.stream]
    reconnect_delay = 2

    [tool.tempest_live.units]
    fahrenheit = true
"""


def test_load_project_config_reads_tool_section(tmp_path: Path) -> None:
    path = write_pyproject(tmp_path, PROJECT)

    loaded = load_project_config(tmp_path)

    assert loaded is not None
    config, source = loaded
    assert source == path.resolve()
    assert config["token"] == "from-file"
    assert config["stream"] == {"reconnect_delay": 2}
    assert config["units"] == {"fahrenheit": True}


def test_load_project_config_without_section(tmp_path: Path) -> None:
    write_pyproject(tmp_path, '[project]\nname = "other"\n')

    assert load_project_config(tmp_path) is None
    assert load_project_config(tmp_path / "missing") is None
    assert load_project_config(tmp_path / "settings.yaml") is None


def test_cli_config_prefers_explicit_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    explicit = tmp_path / "explicit"
    env = tmp_path / "env"
    explicit.mkdir()
    env.mkdir()
    write_pyproject(explicit, PROJECT)
    write_pyproject(env, PROJECT.replace("from-file", "from-env"))
    monkeypatch.setenv(CONFIG_ENV_VAR, str(env))

    assert load_cli_config(explicit)["token"] == "from-file"
    assert load_cli_config()["token"] == "from-env"


def test_cli_config_falls_back_to_working_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    write_pyproject(tmp_path, PROJECT)
    monkeypatch.chdir(tmp_path)

    config = load_cli_config()

    assert config["station_id"] == 1001
    assert config["_config_path"] == str((tmp_path / "pyproject.toml").resolve())


def test_cli_config_without_files(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    assert load_cli_config() == {"_config_path": None}


def test_invalid_toml_is_a_usage_error(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text("[tool.tempest_live\n", encoding="utf8")

    with pytest.raises(CliError) as excinfo:
        load_cli_config(tmp_path)

    assert excinfo.value.status_code == 2


def test_token_resolution_order(monkeypatch: pytest.MonkeyPatch) -> None:
    config = {"token": "from-file"}

    assert resolve_token(None, config) == "from-file"
    monkeypatch.setenv(TOKEN_ENV_VAR, "from-env")
    assert resolve_token(None, config) == "from-env"
    assert resolve_token("explicit", config) == "explicit"


def test_missing_token_is_an_auth_error() -> None:
    with pytest.raises(CliError) as excinfo:
        resolve_token("  ", {})

    assert excinfo.value.category == "auth"
    assert excinfo.value.status_code == 5


def test_station_id_resolution() -> None:
    assert resolve_station_id(7, {"station_id": 1}) == 7
    assert resolve_station_id(None, {"station_id": "12"}) == 12
    assert resolve_station_id(None, {}) is None
    with pytest.raises(CliError):
        resolve_station_id(None, {"station_id": "north"})
