from __future__ import annotations

import json
from pathlib import Path

import pytest

from core.config import AppSettings
from core.errors import DeploymentFileError
from core.resources_loader import (
    DEPLOYMENT_FILENAME,
    build_deployment,
    find_deployment_file,
    load_deployment,
    save_deployment,
)


def _write(path: Path, data: object) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_load_applies_settings_defaults(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "d.json",
        {"repo_name": "r", "project_name": "p", "working_dir": "/srv/r", "domain": "example.com"},
    )
    settings = AppSettings(_env_file=None, default_user="deploy", default_workers=4)
    spec = load_deployment(path, settings)
    assert spec.user == "deploy"
    assert spec.workers == 4
    assert spec.group == "www-data"


def test_overrides_win(tmp_path: Path, settings) -> None:
    path = _write(
        tmp_path / "d.json",
        {"repo_name": "r", "project_name": "p", "working_dir": "/srv/r", "domain": "example.com", "workers": 2},
    )
    spec = load_deployment(path, settings, {"workers": 6, "domain": None})
    assert spec.workers == 6
    assert spec.domain == "example.com"


@pytest.mark.parametrize(
    "content, message",
    [
        ("{not json", "not valid JSON"),
        ("[1, 2]", "JSON object"),
        (json.dumps({"repo_name": "r"}), "project_name"),
    ],
)
def test_invalid_files(tmp_path: Path, settings, content: str, message: str) -> None:
    path = tmp_path / "d.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(DeploymentFileError, match=message):
        load_deployment(path, settings)


def test_missing_file(tmp_path: Path, settings) -> None:
    with pytest.raises(DeploymentFileError):
        load_deployment(tmp_path / "nope.json", settings)


def test_find_deployment_file_order(tmp_path: Path) -> None:
    assert find_deployment_file(tmp_path) is None
    nested = tmp_path / "deploy"
    nested.mkdir()
    _write(nested / DEPLOYMENT_FILENAME, {})
    assert find_deployment_file(tmp_path) == nested / DEPLOYMENT_FILENAME
    _write(tmp_path / DEPLOYMENT_FILENAME, {})
    assert find_deployment_file(tmp_path) == tmp_path / DEPLOYMENT_FILENAME


def test_save_and_reload(tmp_path: Path, settings) -> None:
    spec = build_deployment(
        {
            "repo_name": "r",
            "project_name": "p",
            "working_dir": "/srv/r",
            "domain": "example.com",
            "socket_path": "/run/custom.sock",
        },
        settings,
    )
    path = save_deployment(spec, tmp_path / "out" / DEPLOYMENT_FILENAME)
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["socket_path"] == "/run/custom.sock"
    assert "venv_dir" not in payload
    assert load_deployment(path, settings) == spec
