"""Chequeo de consistencia entre artefactos de despliegue.

Las reglas comparan los identificadores que deben coincidir entre el service
unit, el socket unit, el site de nginx, los settings de Django y el manifest
de dependencias. Cada regla produce `Finding`s con un id estable; un error de
parseo en un artefacto no impide ejecutar las reglas sobre los demás.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from adapters.parsers.django_settings import (
    host_allowed,
    is_local_or_ip,
    read_allowed_hosts,
    read_static_root,
)
from adapters.parsers.nginx_conf import SiteFacts, parse_nginx, site_facts
from adapters.parsers.requirements import duplicates, is_editable, option_lines, parse_requirements
from adapters.parsers.systemd_unit import GunicornCommand, UnitFile, parse_exec_start, parse_unit
from core.domain import naming
from core.domain.models import (
    CheckReport,
    DeploymentSpec,
    Finding,
    RenderedArtifact,
    Requirement,
    Severity,
)
from core.errors import ArtifactIOError, ParseError

logger = logging.getLogger(__name__)

ARTIFACT_KINDS = ("service", "socket", "site", "settings", "requirements")


@dataclass
class ArtifactBundle:
    """Texto de cada artefacto (None si no se aporta) y su nombre de fichero."""

    service: str | None = None
    socket: str | None = None
    site: str | None = None
    settings: str | None = None
    requirements: str | None = None
    service_name: str | None = None
    socket_name: str | None = None
    settings_base_dir: str | None = None
    sources: dict[str, str] = field(default_factory=dict)

    def present(self) -> list[str]:
        return [kind for kind in ARTIFACT_KINDS if getattr(self, kind) is not None]


@dataclass
class _Parsed:
    service: UnitFile | None = None
    command: GunicornCommand | None = None
    socket: UnitFile | None = None
    site: SiteFacts | None = None
    settings_loaded: bool = False
    allowed_hosts: list[str] | None = None
    static_root: str | None = None
    requirements: list[Requirement] | None = None
    requirement_options: list[tuple[int, str]] = field(default_factory=list)


def bundle_from_artifacts(artifacts: Iterable[RenderedArtifact]) -> ArtifactBundle:
    bundle = ArtifactBundle()
    for artifact in artifacts:
        if artifact.kind not in ARTIFACT_KINDS:
            continue
        setattr(bundle, artifact.kind, artifact.content)
        bundle.sources[artifact.kind] = artifact.install_path
        if artifact.kind == "service":
            bundle.service_name = artifact.filename
        elif artifact.kind == "socket":
            bundle.socket_name = artifact.filename
        elif artifact.kind == "settings":
            # <working_dir>/<project>/production_settings.py -> <working_dir>
            bundle.settings_base_dir = posixpath.dirname(posixpath.dirname(artifact.install_path))
    return bundle


def read_artifact(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ArtifactIOError(str(path), exc) from exc


def bundle_from_paths(
    *,
    service: Path | None = None,
    socket: Path | None = None,
    site: Path | None = None,
    settings: Path | None = None,
    requirements: Path | None = None,
    settings_base_dir: str | None = None,
) -> ArtifactBundle:
    bundle = ArtifactBundle(settings_base_dir=settings_base_dir)
    for kind, path in (
        ("service", service),
        ("socket", socket),
        ("site", site),
        ("settings", settings),
        ("requirements", requirements),
    ):
        if path is None:
            continue
        setattr(bundle, kind, read_artifact(path))
        bundle.sources[kind] = str(path)
    if service is not None:
        bundle.service_name = service.name
    if socket is not None:
        bundle.socket_name = socket.name
    return bundle


def discover_artifacts(directory: Path) -> dict[str, Path]:
    """Busca artefactos en un árbol (p.ej. la salida de `render`)."""

    found: dict[str, Path] = {}
    files = sorted(p for p in directory.rglob("*") if p.is_file())

    def pick(kind: str, candidates: list[Path]) -> None:
        if not candidates:
            return
        if len(candidates) > 1:
            logger.warning("several %s candidates, using %s", kind, candidates[0])
        found[kind] = candidates[0]

    pick("service", [p for p in files if p.suffix == ".service"])
    pick("socket", [p for p in files if p.suffix == ".socket"])
    pick("site", [p for p in files if p.parent.name in ("sites-available", "sites-enabled")]
         or [p for p in files if p.suffix == ".conf"]
         or [p for p in files if not p.suffix])
    pick("settings", [p for p in files if p.name == "production_settings.py"]
         or [p for p in files if p.name == "settings.py"])
    pick("requirements", [p for p in files if p.name == "requirements.txt"])
    return found


def _finding(
    report: CheckReport,
    rule: str,
    severity: Severity,
    message: str,
    *,
    artifacts: list[str] | None = None,
    expected: str | None = None,
    actual: str | None = None,
) -> None:
    report.findings.append(
        Finding(
            rule=rule,
            severity=severity,
            message=message,
            artifacts=artifacts or [],
            expected=expected,
            actual=actual,
        )
    )


def _parse_all(bundle: ArtifactBundle, report: CheckReport) -> _Parsed:
    parsed = _Parsed()

    def guarded(kind: str, func) -> None:
        try:
            func()
        except ParseError as exc:
            _finding(report, "parse-error", Severity.ERROR, str(exc), artifacts=[kind])

    if bundle.service is not None:
        def _service() -> None:
            parsed.service = parse_unit(bundle.service or "")
            exec_start = parsed.service.get("Service", "ExecStart")
            if exec_start:
                parsed.command = parse_exec_start(exec_start)

        guarded("service", _service)

    if bundle.socket is not None:
        def _socket() -> None:
            parsed.socket = parse_unit(bundle.socket or "")

        guarded("socket", _socket)

    if bundle.site is not None:
        def _site() -> None:
            parsed.site = site_facts(parse_nginx(bundle.site or ""))

        guarded("site", _site)

    if bundle.settings is not None:
        def _settings() -> None:
            parsed.allowed_hosts = read_allowed_hosts(bundle.settings or "")
            parsed.static_root = read_static_root(bundle.settings or "", bundle.settings_base_dir)
            parsed.settings_loaded = True

        guarded("settings", _settings)

    if bundle.requirements is not None:
        def _requirements() -> None:
            parsed.requirements = parse_requirements(bundle.requirements or "")
            parsed.requirement_options = option_lines(bundle.requirements or "")

        guarded("requirements", _requirements)

    return parsed


def _service_socket_paths(parsed: _Parsed) -> list[str] | None:
    if parsed.service is None:
        return None
    if parsed.command is None:
        return []
    return [b[len(naming.UNIX_PREFIX):] for b in parsed.command.bind if b.startswith(naming.UNIX_PREFIX)]


def _check_socket_path(parsed: _Parsed, report: CheckReport, expected: DeploymentSpec | None) -> None:
    by_source: dict[str, list[str]] = {}

    service_paths = _service_socket_paths(parsed)
    if service_paths is not None:
        if not service_paths:
            _finding(report, "socket-path", Severity.ERROR,
                     "service ExecStart does not bind a unix socket (--bind unix:PATH)",
                     artifacts=["service"])
        by_source["service"] = service_paths

    if parsed.socket is not None:
        listens = parsed.socket.get_all("Socket", "ListenStream")
        if not listens:
            _finding(report, "socket-path", Severity.ERROR, "socket unit has no ListenStream=", artifacts=["socket"])
        for listen in listens:
            if not listen.startswith("/"):
                _finding(report, "socket-listen-path", Severity.ERROR,
                         f"ListenStream={listen} is not an absolute filesystem path",
                         artifacts=["socket"], actual=listen)
        by_source["socket"] = listens

    if parsed.site is not None:
        site_paths = parsed.site.socket_paths
        if not site_paths:
            _finding(report, "socket-path", Severity.ERROR,
                     "site has no proxy_pass to a unix socket",
                     artifacts=["site"], actual=", ".join(parsed.site.proxy_targets) or None)
        by_source["site"] = site_paths

    present = {kind: paths for kind, paths in by_source.items() if paths}
    if len(by_source) < 2:
        _finding(report, "missing-artifact", Severity.WARNING,
                 "socket path agreement needs at least two of service, socket and site",
                 artifacts=sorted(by_source))
    distinct = sorted({p for paths in present.values() for p in paths})
    if len(distinct) > 1:
        detail = "; ".join(f"{kind}: {', '.join(paths)}" for kind, paths in sorted(present.items()))
        _finding(report, "socket-path", Severity.ERROR,
                 f"socket path differs between artifacts ({detail})",
                 artifacts=sorted(present), actual=detail)

    if expected is not None and expected.socket_path:
        for kind, paths in sorted(present.items()):
            for path in paths:
                if path != expected.socket_path:
                    _finding(report, "socket-path", Severity.ERROR,
                             f"{kind} uses socket {path}, deployment expects {expected.socket_path}",
                             artifacts=[kind], expected=expected.socket_path, actual=path)


def _check_socket_service_pair(
    bundle: ArtifactBundle, parsed: _Parsed, report: CheckReport, expected: DeploymentSpec | None
) -> None:
    socket_name = bundle.socket_name
    service_name = bundle.service_name

    if expected is not None:
        for kind, actual, wanted in (
            ("socket", socket_name, expected.socket_unit),
            ("service", service_name, expected.service_unit),
        ):
            if actual is not None and actual != wanted:
                _finding(report, "socket-service-pair", Severity.ERROR,
                         f"{kind} unit is named {actual}, deployment expects {wanted}",
                         artifacts=[kind], expected=wanted, actual=actual)

    if parsed.socket is not None and socket_name and service_name:
        activated = parsed.socket.get("Socket", "Service") or naming.service_unit_name(naming.unit_stem(socket_name))
        if activated != service_name:
            _finding(report, "socket-service-pair", Severity.ERROR,
                     f"{socket_name} activates {activated}, not {service_name}",
                     artifacts=["socket", "service"], expected=service_name, actual=activated)

    if parsed.service is not None and socket_name:
        requires = parsed.service.get_list("Unit", "Requires")
        if socket_name not in requires:
            _finding(report, "socket-service-pair", Severity.ERROR,
                     f"service does not declare Requires={socket_name}",
                     artifacts=["service"], expected=socket_name, actual=" ".join(requires) or None)


def _check_hosts(parsed: _Parsed, report: CheckReport, expected: DeploymentSpec | None) -> None:
    site = parsed.site
    allowed = parsed.allowed_hosts

    if parsed.settings_loaded and allowed is None:
        _finding(report, "server-names", Severity.WARNING,
                 "ALLOWED_HOSTS is missing or not a literal list; host checks skipped",
                 artifacts=["settings"])

    if site is not None and allowed is not None:
        for name in site.server_names:
            if not host_allowed(name, allowed):
                _finding(report, "server-names", Severity.ERROR,
                         f"server_name {name} is not in ALLOWED_HOSTS",
                         artifacts=["site", "settings"], expected=name, actual=", ".join(allowed) or None)
        for pattern in allowed:
            if pattern == "*":
                _finding(report, "allowed-hosts-extra", Severity.WARNING,
                         "ALLOWED_HOSTS contains '*' and accepts any Host header",
                         artifacts=["settings"], actual=pattern)
                continue
            if any(host_allowed(name, [pattern]) for name in site.server_names):
                continue
            severity = Severity.INFO if is_local_or_ip(pattern) else Severity.WARNING
            _finding(report, "allowed-hosts-extra", severity,
                     f"ALLOWED_HOSTS entry {pattern} has no matching server_name",
                     artifacts=["settings", "site"], actual=pattern)
    elif site is None or not parsed.settings_loaded:
        _finding(report, "missing-artifact", Severity.WARNING,
                 "server_name / ALLOWED_HOSTS agreement needs both site and settings",
                 artifacts=[k for k, v in (("site", site), ("settings", parsed.settings_loaded or None)) if v])

    if expected is not None:
        if site is not None:
            for name in expected.server_names:
                if name not in site.server_names:
                    _finding(report, "expected-domain", Severity.ERROR,
                             f"{name} is not a server_name of the site",
                             artifacts=["site"], expected=name, actual=" ".join(site.server_names) or None)
        if allowed is not None and not host_allowed(expected.domain, allowed):
            _finding(report, "expected-domain", Severity.ERROR,
                     f"{expected.domain} is not allowed by ALLOWED_HOSTS",
                     artifacts=["settings"], expected=expected.domain, actual=", ".join(allowed) or None)


def _check_service(parsed: _Parsed, report: CheckReport, expected: DeploymentSpec | None) -> None:
    if parsed.service is None:
        return

    workdir = parsed.service.get("Service", "WorkingDirectory")
    if workdir is None:
        _finding(report, "working-dir", Severity.WARNING, "service has no WorkingDirectory=", artifacts=["service"])
    elif expected is not None and posixpath.normpath(workdir) != expected.working_dir:
        _finding(report, "working-dir", Severity.ERROR,
                 f"WorkingDirectory={workdir}, deployment expects {expected.working_dir}",
                 artifacts=["service"], expected=expected.working_dir, actual=workdir)

    command = parsed.command
    if command is None:
        _finding(report, "wsgi-app", Severity.ERROR, "service has no ExecStart=", artifacts=["service"])
        return

    if not command.executable.startswith("/"):
        _finding(report, "working-dir", Severity.WARNING,
                 f"ExecStart executable {command.executable} is not an absolute path",
                 artifacts=["service"], actual=command.executable)
    elif expected is not None and command.executable != expected.gunicorn_path:
        _finding(report, "working-dir", Severity.WARNING,
                 f"ExecStart runs {command.executable}, deployment venv has {expected.gunicorn_path}",
                 artifacts=["service"], expected=expected.gunicorn_path, actual=command.executable)

    if command.app is None:
        _finding(report, "wsgi-app", Severity.ERROR, "ExecStart has no WSGI application argument",
                 artifacts=["service"])
    else:
        if ":" not in command.app:
            _finding(report, "wsgi-app", Severity.WARNING,
                     f"WSGI application {command.app} is not in module:callable form",
                     artifacts=["service"], actual=command.app)
        if expected is not None and command.app != expected.wsgi_app:
            _finding(report, "wsgi-app", Severity.ERROR,
                     f"WSGI application {command.app}, deployment expects {expected.wsgi_app}",
                     artifacts=["service"], expected=expected.wsgi_app, actual=command.app)

    if command.workers is None:
        _finding(report, "workers", Severity.WARNING,
                 "ExecStart does not set --workers (gunicorn defaults to 1)", artifacts=["service"])
    else:
        try:
            workers = int(command.workers)
        except ValueError:
            workers = 0
        if workers < 1:
            _finding(report, "workers", Severity.ERROR,
                     f"--workers {command.workers} is not a positive integer",
                     artifacts=["service"], actual=command.workers)
        elif expected is not None and workers != expected.workers:
            _finding(report, "workers", Severity.WARNING,
                     f"--workers {workers}, deployment expects {expected.workers}",
                     artifacts=["service"], expected=str(expected.workers), actual=str(workers))


def _served_dir(prefix: str, kind: str, path: str) -> str:
    if kind == "alias":
        return posixpath.normpath(path)
    return posixpath.normpath(path.rstrip("/") + "/" + prefix.strip("/"))


def _check_static(parsed: _Parsed, report: CheckReport, expected: DeploymentSpec | None) -> None:
    site = parsed.site
    static_root = parsed.static_root or (expected.static_root if expected is not None else None)
    if site is None or static_root is None:
        return

    wanted_prefix = expected.static_url if expected is not None else None
    served = {
        prefix: _served_dir(prefix, kind, path)
        for prefix, (kind, path) in site.static_locations.items()
        if prefix != "/" and (wanted_prefix is None or prefix == wanted_prefix)
    }
    if not served:
        _finding(report, "static-root", Severity.WARNING,
                 "site has no location serving static files", artifacts=["site"], expected=static_root)
        return
    if posixpath.normpath(static_root) not in served.values():
        actual = ", ".join(f"{p} -> {d}" for p, d in sorted(served.items()))
        _finding(report, "static-root", Severity.WARNING,
                 f"no static location serves STATIC_ROOT {static_root}",
                 artifacts=["site", "settings"], expected=static_root, actual=actual)


def _check_requirements(parsed: _Parsed, report: CheckReport) -> None:
    if parsed.requirements is None:
        return
    for req in parsed.requirements:
        if not req.pinned:
            spec = req.specifier or "(no version)"
            _finding(report, "requirements-pinned", Severity.ERROR,
                     f"{req.name} is not pinned with == (line {req.line_no}: {spec})",
                     artifacts=["requirements"], actual=spec)
    for line_no, option in parsed.requirement_options:
        if is_editable(option):
            _finding(report, "requirements-pinned", Severity.ERROR,
                     f"editable install is not a pinned release (line {line_no}: {option})",
                     artifacts=["requirements"], actual=option)
        else:
            _finding(report, "requirements-pinned", Severity.WARNING,
                     f"pip option line is not checked for pins (line {line_no}: {option})",
                     artifacts=["requirements"], actual=option)
    for key, lines in sorted(duplicates(parsed.requirements).items()):
        _finding(report, "requirements-pinned", Severity.ERROR,
                 f"{key} is listed more than once (lines {', '.join(map(str, lines))})",
                 artifacts=["requirements"])


def check_artifacts(bundle: ArtifactBundle, expected: DeploymentSpec | None = None) -> CheckReport:
    """Ejecuta todas las reglas y devuelve el reporte."""

    report = CheckReport(sources=dict(bundle.sources))
    logger.debug("checking artifacts: %s", ", ".join(bundle.present()) or "none")

    parsed = _parse_all(bundle, report)
    _check_socket_path(parsed, report, expected)
    _check_socket_service_pair(bundle, parsed, report, expected)
    _check_hosts(parsed, report, expected)
    _check_service(parsed, report, expected)
    _check_static(parsed, report, expected)
    _check_requirements(parsed, report)

    logger.info("check finished: %d error(s), %d warning(s)", len(report.errors), len(report.warnings))
    return report
