"""CLI principal (Typer).

Comandos:
- `render`: genera service/socket/site/settings/requirements y los autoverifica.
- `check`: verifica la consistencia de artefactos existentes.
- `compare-requirements`: compara un manifest con el `pip freeze` de otro host.
- `init`: crea el descriptor `stackwright.json` de forma interactiva.
- `probe`: comprueba DNS y respuesta HTTP del dominio desplegado.
- `doctor`: diagnóstico del entorno.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from adapters.json_exporter import export_report_json
from adapters.report_exporter import export_report_html
from cli import doctor
from cli.ui_components import (
    build_artifacts_table,
    build_findings_table,
    build_manifest_diff_table,
    build_summary_panel,
    print_banner,
)
from core.config import AppSettings
from core.domain.models import DeploymentSpec, RenderedArtifact
from core.errors import DeploymentFileError, InconsistentArtifactsError, StackwrightError
from core.logging_setup import configure_logging
from core.resources_loader import (
    DEPLOYMENT_FILENAME,
    build_deployment,
    find_deployment_file,
    load_deployment,
    save_deployment,
)
from core.services.consistency import bundle_from_paths, check_artifacts, discover_artifacts
from core.services.probe import run_probe
from core.services.render_pipeline import PipelineHooks, run_render
from core.services.reproducibility import compare_requirement_files

app = typer.Typer(
    no_args_is_help=True,
    help="Render and cross-check gunicorn/systemd/nginx deployment files for a Django app.",
)
app.add_typer(doctor.app, name="doctor")

_console = Console()

EXIT_CHECK_FAILED = 1
EXIT_USAGE_ERROR = 2

_OVERRIDE_FLAGS = {
    "repo_name": "--repo",
    "project_name": "--project",
    "working_dir": "--workdir",
    "domain": "--domain",
}


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    try:
        settings = AppSettings()
    except ValidationError as exc:
        problems = "; ".join(
            f"STACKWRIGHT_{'_'.join(str(x) for x in err.get('loc', ())).upper()}: {err.get('msg')}"
            for err in exc.errors()
        )
        raise _fail(StackwrightError(f"invalid configuration: {problems}"))
    configure_logging(settings.log_level, verbose=verbose)


def _fail(exc: StackwrightError) -> typer.Exit:
    _console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}", highlight=False)
    return typer.Exit(code=EXIT_USAGE_ERROR)


def _resolve_spec(
    deployment: Optional[Path],
    settings: AppSettings,
    overrides: dict[str, Any],
) -> DeploymentSpec:
    path = deployment or find_deployment_file()
    if path is not None:
        return load_deployment(path, settings, overrides)
    required = ("repo_name", "project_name", "working_dir", "domain")
    missing = [name for name in required if overrides.get(name) is None]
    if missing:
        flags = ", ".join(_OVERRIDE_FLAGS[name] for name in missing)
        raise DeploymentFileError(
            f"no {DEPLOYMENT_FILENAME} found; pass --deployment or {flags}"
        )
    return build_deployment(overrides, settings)


@app.command()
def render(
    deployment: Optional[Path] = typer.Option(None, "--deployment", "-d", help="Deployment descriptor (JSON)."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory (default: build/)."),
    flat: bool = typer.Option(False, "--flat", help="Write files side by side instead of mirroring host paths."),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace existing files that differ."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the artifacts instead of writing them."),
    repo: Optional[str] = typer.Option(None, "--repo", help="Repository name (socket, units, site)."),
    project: Optional[str] = typer.Option(None, "--project", help="Django project package."),
    domain: Optional[str] = typer.Option(None, "--domain", help="Primary domain name."),
    workdir: Optional[str] = typer.Option(None, "--workdir", help="Project path on the host."),
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Gunicorn workers."),
    tls: Optional[bool] = typer.Option(None, "--tls/--no-tls", help="Render the certbot-managed site layout."),
) -> None:
    """Render all deployment artifacts and verify they agree with each other."""

    settings = AppSettings()
    overrides = {
        "repo_name": repo,
        "project_name": project,
        "domain": domain,
        "working_dir": workdir,
        "workers": workers,
        "tls": tls,
    }

    def _on_written(artifact: RenderedArtifact, path: Path, status: str) -> None:
        table.add_row(artifact.kind, artifact.install_path, str(path), status)

    table = build_artifacts_table()
    try:
        spec = _resolve_spec(deployment, settings, overrides)
        result = run_render(
            spec,
            output_dir=None if dry_run else (output or settings.output_dir),
            mirror_layout=not flat,
            overwrite=overwrite,
            settings=settings,
            hooks=PipelineHooks(artifact_written=_on_written),
        )
    except InconsistentArtifactsError as exc:
        _console.print(build_findings_table(exc.report))
        raise _fail(exc)
    except StackwrightError as exc:
        raise _fail(exc)

    if dry_run:
        for artifact in result.artifacts:
            _console.rule(f"{artifact.kind}: {artifact.install_path}")
            _console.print(artifact.content, markup=False, highlight=False, end="")
        return

    print_banner(_console)
    _console.print(table)
    if result.report.findings:
        _console.print(build_findings_table(result.report))


@app.command()
def check(
    service: Optional[Path] = typer.Option(None, "--service", exists=True, dir_okay=False, help="<repo>.service unit."),
    socket: Optional[Path] = typer.Option(None, "--socket", exists=True, dir_okay=False, help="<repo>.socket unit."),
    site: Optional[Path] = typer.Option(None, "--site", exists=True, dir_okay=False, help="nginx site file."),
    settings_file: Optional[Path] = typer.Option(
        None, "--settings", exists=True, dir_okay=False, help="Django settings module with ALLOWED_HOSTS."
    ),
    requirements: Optional[Path] = typer.Option(
        None, "--requirements", exists=True, dir_okay=False, help="Pinned requirements.txt."
    ),
    directory: Optional[Path] = typer.Option(
        None, "--dir", exists=True, file_okay=False, help="Discover artifacts in a directory tree."
    ),
    deployment: Optional[Path] = typer.Option(
        None, "--deployment", "-d", help="Also compare against this deployment descriptor."
    ),
    json_out: Optional[Path] = typer.Option(None, "--json", help="Write the report as JSON."),
    html_out: Optional[Path] = typer.Option(None, "--html", help="Write the report as HTML."),
) -> None:
    """Check that existing artifacts share the same socket path, hosts and names."""

    settings = AppSettings()
    paths: dict[str, Path] = discover_artifacts(directory) if directory else {}
    explicit = {
        "service": service,
        "socket": socket,
        "site": site,
        "settings": settings_file,
        "requirements": requirements,
    }
    paths.update({k: v for k, v in explicit.items() if v is not None})
    if not paths:
        raise typer.BadParameter("pass at least one artifact (--service, --socket, --site, ...) or --dir")

    try:
        expected = load_deployment(deployment, settings) if deployment else None
        bundle = bundle_from_paths(
            settings_base_dir=expected.working_dir if expected else None,
            **paths,
        )
        report = check_artifacts(bundle, expected=expected)
        if json_out:
            export_report_json(report=report, output_path=json_out)
        if html_out:
            export_report_html(report=report, output_path=html_out)
    except StackwrightError as exc:
        raise _fail(exc)
    except OSError as exc:
        raise _fail(StackwrightError(str(exc)))

    if report.findings:
        _console.print(build_findings_table(report))
    _console.print(build_summary_panel(report))
    if not report.ok:
        raise typer.Exit(code=EXIT_CHECK_FAILED)


@app.command(name="compare-requirements")
def compare_requirements(
    left: Path = typer.Argument(..., exists=True, dir_okay=False, help="Reference manifest (requirements.txt)."),
    right: Path = typer.Argument(..., exists=True, dir_okay=False, help="Other installation (pip freeze output)."),
) -> None:
    """Check that two installations resolve to the same pinned package set."""

    try:
        diff = compare_requirement_files(left, right)
    except StackwrightError as exc:
        raise _fail(exc)

    if diff.identical:
        _console.print(f"[bold green]Identical:[/bold green] {left} == {right}", highlight=False)
        return
    _console.print(build_manifest_diff_table(diff, left.name, right.name))
    raise typer.Exit(code=EXIT_CHECK_FAILED)


@app.command()
def init(
    path: Path = typer.Option(Path(DEPLOYMENT_FILENAME), "--path", help="Where to write the descriptor."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing descriptor."),
) -> None:
    """Interactively create a deployment descriptor."""

    if path.exists() and not force:
        raise _fail(DeploymentFileError(f"{path} already exists (use --force)"))

    settings = AppSettings()
    repo = typer.prompt("Repository name").strip()
    project = typer.prompt("Django project package", default=repo.replace("-", "_")).strip()
    user = typer.prompt("Service user", default=settings.default_user).strip()
    workdir = typer.prompt("Project path on the host", default=f"/home/{user}/{repo}").strip()
    domain = typer.prompt("Domain name").strip()
    include_www = typer.confirm(f"Also serve www.{domain}?", default=True)
    workers = typer.prompt("Gunicorn workers", default=settings.default_workers, type=int)
    tls = typer.confirm("Site already has a certbot certificate?", default=False)

    try:
        spec = build_deployment(
            {
                "repo_name": repo,
                "project_name": project,
                "working_dir": workdir,
                "domain": domain,
                "include_www": include_www,
                "user": user,
                "workers": workers,
                "tls": tls,
            },
            settings,
        )
        save_deployment(spec, path)
    except StackwrightError as exc:
        raise _fail(exc)

    _console.print(f"[green]Saved deployment to:[/green] {path}")
    _console.print(f"socket: {spec.socket_path}  units: {spec.socket_unit}, {spec.service_unit}", highlight=False)


@app.command()
def probe(
    deployment: Optional[Path] = typer.Option(None, "--deployment", "-d", help="Deployment descriptor (JSON)."),
    expect_ip: Optional[str] = typer.Option(None, "--expect-ip", help="Host address every server name must resolve to."),
) -> None:
    """Resolve each server name and confirm nginx answers for it."""

    settings = AppSettings()
    try:
        spec = _resolve_spec(deployment, settings, {})
    except StackwrightError as exc:
        raise _fail(exc)

    table = Table(title=f"Probe {spec.domain}")
    table.add_column("Host", style="cyan", no_wrap=True)
    table.add_column("Addresses", style="white")
    table.add_column("HTTP", style="white")
    table.add_column("Status")

    results = run_probe(spec, settings=settings, expect_ip=expect_ip)
    for r in results:
        if r.dns_error:
            addresses = f"DNS error: {r.dns_error}"
        else:
            addresses = ", ".join(r.addresses)
            if r.dns_matches is False:
                addresses += f" (expected {expect_ip})"
        if r.http_error:
            http = r.http_error
        elif r.status_code is not None:
            http = f"{r.status_code}" + (f" -> {r.location}" if r.location else "")
        else:
            http = "-"
        table.add_row(r.host, addresses, http, "[green]OK[/green]" if r.ok else "[red]FAIL[/red]")
    _console.print(table)

    if not all(r.ok for r in results):
        raise typer.Exit(code=EXIT_CHECK_FAILED)


def run() -> None:
    app()
