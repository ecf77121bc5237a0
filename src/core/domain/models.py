"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Validación estricta de los nombres que comparten los artefactos (repo,
  proyecto, rutas, dominio) antes de renderizar nada.
- Serialización directa a JSON para reportes y descriptores de despliegue.

Nota:
- Estos modelos describen *qué* se despliega, no *cómo* se escribe en disco.
"""

from __future__ import annotations

import posixpath
import re
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from core.domain import naming

_DOMAIN_RE = re.compile(r"^(?=.{1,253}$)([a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?)(\.[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?)*$")
_UNSAFE_RE = re.compile(r"[\s\x00-\x1f\x7f]")
# Caracteres que romperían `--bind unix:PATH` o `proxy_pass http://unix:PATH:;`.
_SOCKET_FORBIDDEN = set(":;{}")


def _absolute_posix(value: str, field_name: str) -> str:
    value = value.strip()
    if not value.startswith("/"):
        raise ValueError(f"{field_name} must be an absolute path on the host, got {value!r}")
    if _UNSAFE_RE.search(value):
        raise ValueError(f"{field_name} must not contain whitespace or control characters, got {value!r}")
    return posixpath.normpath(value)


def _single_token(value: str, field_name: str) -> str:
    # Se escribe tal cual en el service unit: una sola palabra, sin saltos de línea.
    if _UNSAFE_RE.search(value):
        raise ValueError(f"{field_name} must not contain whitespace or control characters, got {value!r}")
    return value


class DeploymentSpec(BaseModel):
    """Placeholders de nombres que deben coincidir entre artefactos.

    Los valores derivados (`socket_path`, `venv_dir`, `static_root`,
    `extra_domains`) se calculan a partir del resto si no se indican.
    """

    repo_name: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Nombre del repositorio: socket, unit files y fichero del site.",
    )
    project_name: str = Field(
        ...,
        min_length=1,
        description="Paquete Django importable (contiene `wsgi.py`).",
    )
    working_dir: str = Field(
        ...,
        description="Ruta absoluta del proyecto clonado en el host.",
    )
    domain: str = Field(
        ...,
        min_length=1,
        description="Dominio principal (ALLOWED_HOSTS y server_name).",
    )
    include_www: bool = Field(
        default=True,
        description="Añade `www.<domain>` a los server names si no se indican extra_domains.",
    )
    extra_domains: list[str] | None = Field(
        default=None,
        description="Server names adicionales.",
    )
    user: str = Field(default="ubuntu", min_length=1)
    group: str = Field(default="www-data", min_length=1)
    workers: int = Field(default=3, ge=1, le=64, description="Workers de gunicorn.")
    venv_dir: str | None = Field(default=None, description="Virtualenv (default <working_dir>/venv).")
    socket_path: str | None = Field(default=None, description="Socket unix (default /run/<repo>.sock).")
    static_url: str = Field(default="/static/")
    static_root: str | None = Field(default=None, description="STATIC_ROOT (default <working_dir>/static).")
    listen_port: int = Field(default=80, ge=1, le=65535)
    tls: bool = Field(default=False, description="Renderiza el site como lo deja certbot (443 + redirect).")
    access_log: str = Field(default="-", min_length=1)
    requirements: dict[str, str] = Field(
        default_factory=dict,
        description="Dependencias fijadas: nombre -> versión exacta.",
    )

    @field_validator("repo_name")
    @classmethod
    def _check_repo_name(cls, value: str) -> str:
        if not naming.REPO_NAME_RE.match(value):
            raise ValueError(f"repo_name {value!r} is not usable as a unit/site file name")
        return value

    @field_validator("project_name")
    @classmethod
    def _check_project_name(cls, value: str) -> str:
        if not value.isidentifier():
            raise ValueError(f"project_name {value!r} is not an importable Python package name")
        return value

    @field_validator("working_dir")
    @classmethod
    def _check_working_dir(cls, value: str) -> str:
        return _absolute_posix(value, "working_dir")

    @field_validator("domain")
    @classmethod
    def _check_domain(cls, value: str) -> str:
        value = value.strip().lower().rstrip(".")
        if not _DOMAIN_RE.match(value):
            raise ValueError(f"{value!r} is not a valid domain name")
        return value

    @field_validator("extra_domains")
    @classmethod
    def _check_extra_domains(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        cleaned: list[str] = []
        for raw in value:
            name = raw.strip().lower().rstrip(".")
            if not _DOMAIN_RE.match(name):
                raise ValueError(f"{raw!r} is not a valid domain name")
            cleaned.append(name)
        return cleaned

    @field_validator("user", "group", "access_log")
    @classmethod
    def _check_unit_token(cls, value: str, info: ValidationInfo) -> str:
        return _single_token(value, info.field_name)

    @field_validator("static_url")
    @classmethod
    def _check_static_url(cls, value: str) -> str:
        if not (value.startswith("/") and value.endswith("/")):
            raise ValueError("static_url must start and end with '/'")
        if _UNSAFE_RE.search(value) or set(";{}").intersection(value):
            raise ValueError(f"static_url is not usable as an nginx location, got {value!r}")
        return value

    @model_validator(mode="after")
    def _fill_derived(self) -> "DeploymentSpec":
        if self.venv_dir is None:
            self.venv_dir = posixpath.join(self.working_dir, "venv")
        else:
            self.venv_dir = _absolute_posix(self.venv_dir, "venv_dir")
        if self.socket_path is None:
            self.socket_path = naming.default_socket_path(self.repo_name)
        else:
            self.socket_path = _absolute_posix(self.socket_path, "socket_path")
            bad = sorted(_SOCKET_FORBIDDEN.intersection(self.socket_path))
            if bad:
                raise ValueError(f"socket_path must not contain {' '.join(bad)}, got {self.socket_path!r}")
        if self.static_root is None:
            self.static_root = posixpath.join(self.working_dir, "static")
        else:
            self.static_root = _absolute_posix(self.static_root, "static_root")
        if self.extra_domains is None:
            www = f"www.{self.domain}"
            self.extra_domains = [www] if self.include_www and not self.domain.startswith("www.") else []
        return self

    @property
    def server_names(self) -> list[str]:
        names: list[str] = []
        for name in [self.domain, *(self.extra_domains or [])]:
            if name not in names:
                names.append(name)
        return names

    @property
    def socket_unit(self) -> str:
        return naming.socket_unit_name(self.repo_name)

    @property
    def service_unit(self) -> str:
        return naming.service_unit_name(self.repo_name)

    @property
    def wsgi_app(self) -> str:
        return naming.wsgi_entrypoint(self.project_name)

    @property
    def gunicorn_path(self) -> str:
        return posixpath.join(self.venv_dir or "", "bin", "gunicorn")


class RenderedArtifact(BaseModel):
    """Un fichero de configuración renderizado, listo para escribir."""

    kind: str = Field(..., min_length=1, description="service | socket | site | requirements | settings")
    filename: str = Field(..., min_length=1)
    install_path: str = Field(..., description="Ruta absoluta de instalación en el host.")
    content: str


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Finding(BaseModel):
    """Resultado de una regla de consistencia."""

    rule: str = Field(..., min_length=1)
    severity: Severity
    message: str
    artifacts: list[str] = Field(default_factory=list)
    expected: str | None = None
    actual: str | None = None


class CheckReport(BaseModel):
    """Agregado de hallazgos de un chequeo de consistencia."""

    findings: list[Finding] = Field(default_factory=list)
    sources: dict[str, str] = Field(
        default_factory=dict,
        description="Artefacto -> ruta o etiqueta de origen.",
    )
    checked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def errors(self) -> list[Finding]:
        return [f for f in self.findings if f.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[Finding]:
        return [f for f in self.findings if f.severity is Severity.WARNING]

    @property
    def ok(self) -> bool:
        return not self.errors


class Requirement(BaseModel):
    """Una línea de un manifest de dependencias."""

    name: str = Field(..., min_length=1)
    operator: str | None = None
    version: str | None = None
    url: str | None = Field(default=None, description="Referencia directa (`name @ url`).")
    line_no: int = Field(default=0, ge=0)

    @property
    def key(self) -> str:
        return normalize_name(self.name)

    @property
    def pinned(self) -> bool:
        return self.operator == "==" and bool(self.version)

    @property
    def specifier(self) -> str | None:
        """Lo que fija la línea, comparable entre manifests (`==1.0`, `@ url`)."""

        if self.operator == "@":
            return f"@ {self.url}" if self.url else "@"
        return f"{self.operator or ''}{self.version or ''}" or None


class ManifestDiff(BaseModel):
    """Diferencias entre dos manifests (izquierda = referencia)."""

    missing: list[str] = Field(default_factory=list, description="En la izquierda, no en la derecha.")
    extra: list[str] = Field(default_factory=list, description="En la derecha, no en la izquierda.")
    mismatched: dict[str, tuple[str | None, str | None]] = Field(default_factory=dict)

    @property
    def identical(self) -> bool:
        return not (self.missing or self.extra or self.mismatched)


_NORMALIZE_RE = re.compile(r"[-_.]+")


def normalize_name(name: str) -> str:
    """Nombre normalizado PEP 503."""

    return _NORMALIZE_RE.sub("-", name).lower()
