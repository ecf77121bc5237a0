"""Cargador del descriptor de despliegue (JSON).

Este módulo vive en `core/` porque:
- centraliza *dónde* buscar el descriptor sin acoplarse a la CLI
- aplica los defaults de `AppSettings` (usuario, grupo, workers) antes de validar.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from core.config import AppSettings, get_user_config_dir
from core.domain.models import DeploymentSpec
from core.errors import DeploymentFileError

DEPLOYMENT_FILENAME = "stackwright.json"

logger = logging.getLogger(__name__)


def find_deployment_file(cwd: Path | None = None) -> Path | None:
    """Busca un descriptor en ubicaciones comunes.

    Orden:
    1) ./stackwright.json
    2) ./deploy/stackwright.json
    3) <user config dir>/stackwright.json
    """

    cwd = cwd or Path.cwd()
    candidates = [
        cwd / DEPLOYMENT_FILENAME,
        cwd / "deploy" / DEPLOYMENT_FILENAME,
        get_user_config_dir() / DEPLOYMENT_FILENAME,
    ]
    for p in candidates:
        if p.exists() and p.is_file():
            logger.debug("using deployment file %s", p)
            return p
    return None


def build_deployment(data: dict[str, Any], settings: AppSettings | None = None) -> DeploymentSpec:
    """Valida `data` como `DeploymentSpec`, completando defaults de settings."""

    settings = settings or AppSettings()
    merged: dict[str, Any] = {
        "user": settings.default_user,
        "group": settings.default_group,
        "workers": settings.default_workers,
    }
    merged.update({k: v for k, v in data.items() if v is not None})
    try:
        return DeploymentSpec.model_validate(merged)
    except ValidationError as exc:
        raise DeploymentFileError(_format_validation(exc)) from exc


def load_deployment(path: Path, settings: AppSettings | None = None, overrides: dict[str, Any] | None = None) -> DeploymentSpec:
    """Lee y valida un descriptor JSON. `overrides` (p.ej. flags de CLI) ganan."""

    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DeploymentFileError(f"cannot read {path}: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DeploymentFileError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise DeploymentFileError(f"{path} must contain a JSON object")

    data.update({k: v for k, v in (overrides or {}).items() if v is not None})
    try:
        return build_deployment(data, settings)
    except DeploymentFileError as exc:
        raise DeploymentFileError(f"{path}: {exc}") from exc


def save_deployment(spec: DeploymentSpec, path: Path) -> Path:
    """Escribe el descriptor con formato estable (solo campos no derivados)."""

    path.parent.mkdir(parents=True, exist_ok=True)
    payload = spec.model_dump(
        mode="json",
        exclude={"venv_dir", "socket_path", "static_root", "extra_domains"},
    )
    # Los derivados solo se guardan si difieren del default calculado.
    defaults = DeploymentSpec(
        repo_name=spec.repo_name,
        project_name=spec.project_name,
        working_dir=spec.working_dir,
        domain=spec.domain,
        include_www=spec.include_www,
    )
    for key in ("venv_dir", "socket_path", "static_root", "extra_domains"):
        value = getattr(spec, key)
        if value != getattr(defaults, key):
            payload[key] = value
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    return path


def _format_validation(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", ())) or "deployment"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)
