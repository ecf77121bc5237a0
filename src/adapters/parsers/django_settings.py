"""Lectura estática de un módulo de settings de Django (sin importarlo).

Importar `settings.py` del proyecto arrastraría su entorno entero; con `ast`
solo leemos los literales que necesitamos: `ALLOWED_HOSTS` y `STATIC_ROOT`.
"""

from __future__ import annotations

import ast
import ipaddress
import posixpath

from core.errors import SettingsParseError


def _parse(text: str) -> ast.Module:
    try:
        return ast.parse(text)
    except SyntaxError as exc:
        raise SettingsParseError(exc.msg or "invalid Python", line=exc.lineno) from exc


def _targets(node: ast.stmt) -> list[str]:
    if isinstance(node, ast.Assign):
        return [t.id for t in node.targets if isinstance(t, ast.Name)]
    if isinstance(node, (ast.AugAssign, ast.AnnAssign)) and isinstance(node.target, ast.Name):
        return [node.target.id]
    return []


def read_allowed_hosts(text: str) -> list[str] | None:
    """Valor de `ALLOWED_HOSTS` a nivel de módulo, o None si no es un literal.

    Soporta `ALLOWED_HOSTS = [...]`, tuplas y `ALLOWED_HOSTS += [...]`.
    """

    module = _parse(text)
    hosts: list[str] | None = None
    for node in module.body:
        if "ALLOWED_HOSTS" not in _targets(node) or node.value is None:
            continue
        try:
            value = ast.literal_eval(node.value)
        except (ValueError, TypeError, SyntaxError):
            hosts = None
            continue
        if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
            hosts = None
            continue
        if isinstance(node, ast.AugAssign):
            if hosts is None:
                hosts = []
            hosts.extend(value)
        else:
            hosts = list(value)
    return hosts


def _static_root_value(node: ast.expr, base_dir: str | None) -> str | None:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    # BASE_DIR / "static"
    if (
        isinstance(node, ast.BinOp)
        and isinstance(node.op, ast.Div)
        and isinstance(node.left, ast.Name)
        and node.left.id == "BASE_DIR"
        and isinstance(node.right, ast.Constant)
        and isinstance(node.right.value, str)
        and base_dir
    ):
        return posixpath.join(base_dir, node.right.value)
    # os.path.join(BASE_DIR, "static")
    if (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Attribute)
        and node.func.attr == "join"
        and node.args
        and isinstance(node.args[0], ast.Name)
        and node.args[0].id == "BASE_DIR"
        and all(isinstance(a, ast.Constant) and isinstance(a.value, str) for a in node.args[1:])
        and base_dir
    ):
        return posixpath.join(base_dir, *[a.value for a in node.args[1:]])
    return None


def read_static_root(text: str, base_dir: str | None = None) -> str | None:
    """Valor de `STATIC_ROOT` (literal, `BASE_DIR / "x"` o `os.path.join(BASE_DIR, "x")`)."""

    module = _parse(text)
    found: str | None = None
    for node in module.body:
        if "STATIC_ROOT" in _targets(node) and node.value is not None:
            found = _static_root_value(node.value, base_dir)
    if found is None:
        return None
    return posixpath.normpath(str(found))


def host_allowed(host: str, allowed: list[str]) -> bool:
    """Reglas de Django: exacto, `*`, o `.dominio` (dominio y subdominios)."""

    host = host.lower().rstrip(".")
    for pattern in allowed:
        pattern = pattern.lower()
        if pattern == "*":
            return True
        if pattern.startswith("."):
            if host == pattern[1:] or host.endswith(pattern):
                return True
        elif host == pattern:
            return True
    return False


def is_local_or_ip(host: str) -> bool:
    if host in ("localhost", "127.0.0.1", "[::1]", "::1"):
        return True
    try:
        ipaddress.ip_address(host.strip("[]"))
    except ValueError:
        return False
    return True
