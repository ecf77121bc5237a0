"""Naming helpers shared by renderers and the consistency checker.

Every identifier that appears in more than one artifact is derived here from
the repository or project name, so the service unit, socket unit and site
block never build their own copy of a shared value.
"""

from __future__ import annotations

import re

REPO_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")

SOCKET_SUFFIX = ".socket"
SERVICE_SUFFIX = ".service"
UNIX_PREFIX = "unix:"
PROXY_UNIX_PREFIX = "http://unix:"


def socket_unit_name(repo_name: str) -> str:
    return f"{repo_name}{SOCKET_SUFFIX}"


def service_unit_name(repo_name: str) -> str:
    return f"{repo_name}{SERVICE_SUFFIX}"


def default_socket_path(repo_name: str) -> str:
    return f"/run/{repo_name}.sock"


def site_name(repo_name: str) -> str:
    return repo_name


def wsgi_entrypoint(project_name: str) -> str:
    return f"{project_name}.wsgi:application"


def unix_bind(socket_path: str) -> str:
    """Valor de `--bind` para gunicorn."""

    return f"{UNIX_PREFIX}{socket_path}"


def proxy_target(socket_path: str) -> str:
    """Valor de `proxy_pass` para nginx."""

    return f"{PROXY_UNIX_PREFIX}{socket_path}"


def unit_stem(unit_name: str) -> str:
    """`app.socket` -> `app`; names without a known suffix are returned as-is."""

    for suffix in (SOCKET_SUFFIX, SERVICE_SUFFIX):
        if unit_name.endswith(suffix):
            return unit_name[: -len(suffix)]
    return unit_name
