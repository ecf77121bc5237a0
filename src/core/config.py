"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Los defaults (usuario, grupo, workers, directorios del host) se comparten
  entre el loader del descriptor, los renderers y el `doctor`.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "stackwright"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "stackwright"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "stackwright"
    return Path.home() / ".config" / "stackwright"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str | None], env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# stackwright user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Orden de carga: variables de entorno, `.env` del proyecto y luego el
    `.env` global del usuario.
    """

    model_config = SettingsConfigDict(
        env_prefix="STACKWRIGHT_",
        extra="ignore",
        case_sensitive=False,
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    default_user: str = Field(
        default="ubuntu",
        min_length=1,
        description="Usuario que ejecuta gunicorn (User= del service).",
    )
    default_group: str = Field(
        default="www-data",
        min_length=1,
        description="Grupo compartido con nginx (Group= del service).",
    )
    default_workers: int = Field(
        default=3,
        ge=1,
        le=64,
        description="Workers de gunicorn si el descriptor no indica otro valor.",
    )

    systemd_dir: str = Field(
        default="/etc/systemd/system",
        description="Directorio de unit files en el host.",
    )
    nginx_sites_dir: str = Field(
        default="/etc/nginx/sites-available",
        description="Directorio de sites disponibles de nginx.",
    )
    nginx_enabled_dir: str = Field(
        default="/etc/nginx/sites-enabled",
        description="Directorio de sites habilitados (symlinks).",
    )
    letsencrypt_dir: str = Field(
        default="/etc/letsencrypt/live",
        description="Raíz de certificados emitidos por certbot.",
    )
    output_dir: Path = Field(
        default=Path("build"),
        description="Directorio local donde `render` escribe los artefactos.",
    )

    http_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout por request en `probe` (segundos).",
    )
    user_agent: str = Field(
        default="stackwright/0.1 (+https://local)",
        min_length=1,
        description="User-Agent para `probe`.",
    )

    log_level: str = Field(
        default="WARNING",
        description="Nivel de logging (DEBUG, INFO, WARNING, ERROR).",
    )
