from __future__ import annotations

import os

import pytest

from core.config import AppSettings
from core.domain.models import DeploymentSpec


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    """Keep tests away from the real user config and the project .env."""

    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for key in list(os.environ):
        if key.startswith("STACKWRIGHT_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(_env_file=None)


@pytest.fixture
def spec() -> DeploymentSpec:
    return DeploymentSpec(
        repo_name="myrepo",
        project_name="myproj",
        working_dir="/home/ubuntu/myrepo",
        domain="example.com",
        requirements={"Django": "4.2.7", "gunicorn": "21.2.0"},
    )
