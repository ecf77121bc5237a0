"""Doctor command for environment diagnostics."""

from __future__ import annotations

import shutil
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from core.config import AppSettings, get_user_env_file, write_user_env_vars
from core.errors import StackwrightError
from core.resources_loader import find_deployment_file, load_deployment

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and default settings.")

_console = Console()

_BINARIES = ("nginx", "systemctl", "certbot")

OK = "OK"
FAIL = "FAIL"
OPTIONAL = "OPTIONAL"


def _check_dir(path: str) -> tuple[str, str]:
    p = Path(path)
    if p.is_dir():
        return OK, path
    return OPTIONAL, f"{path} not found (expected on the target host only)"


def collect_checks(settings: AppSettings, deployment: Path | None = None) -> list[tuple[str, str, str]]:
    """Run baseline checks and return `(check, status, details)` rows."""

    rows: list[tuple[str, str, str]] = []

    version = ".".join(str(v) for v in sys.version_info[:3])
    rows.append(("Python", OK if sys.version_info >= (3, 10) else FAIL, version))

    env_file = get_user_env_file()
    rows.append(("User config", OK if env_file.exists() else OPTIONAL, str(env_file)))

    for label, path in (
        ("systemd dir", settings.systemd_dir),
        ("nginx sites-available", settings.nginx_sites_dir),
        ("nginx sites-enabled", settings.nginx_enabled_dir),
    ):
        status, detail = _check_dir(path)
        rows.append((label, status, detail))

    for name in _BINARIES:
        found = shutil.which(name)
        rows.append((f"{name} binary", OK if found else OPTIONAL, found or "not on PATH"))

    deployment = deployment or find_deployment_file()
    if deployment is None:
        rows.append(("Deployment file", OPTIONAL, "no stackwright.json found (run `stackwright init`)"))
        return rows

    try:
        spec = load_deployment(deployment, settings)
    except StackwrightError as exc:
        rows.append(("Deployment file", FAIL, str(exc)))
        return rows
    rows.append(("Deployment file", OK, f"{deployment} ({spec.repo_name} -> {spec.domain})"))

    enabled = Path(settings.nginx_enabled_dir) / spec.repo_name
    if Path(settings.nginx_enabled_dir).is_dir():
        rows.append((
            "Site enabled",
            OK if enabled.exists() else FAIL,
            str(enabled) if enabled.exists() else f"missing link {enabled}",
        ))
    return rows


@app.command()
def run(
    deployment: Optional[Path] = typer.Option(None, "--deployment", "-d", help="Deployment descriptor (JSON)."),
) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="stackwright doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    rows = collect_checks(settings, deployment)
    for check, status, detail in rows:
        table.add_row(check, status, detail)
    _console.print(table)

    if any(status == FAIL for _, status, _ in rows):
        raise typer.Exit(code=1)


@app.command(name="set-defaults")
def set_defaults() -> None:
    """Interactive defaults setup (stored in the user config .env)."""

    settings = AppSettings()

    user = typer.prompt("Service user", default=settings.default_user, show_default=True).strip()
    group = typer.prompt("Service group", default=settings.default_group, show_default=True).strip()
    workers = typer.prompt("Gunicorn workers", default=settings.default_workers, type=int, show_default=True)

    if not user or not group:
        raise typer.BadParameter("user and group are required")
    if workers < 1:
        raise typer.BadParameter("workers must be >= 1")

    env_path = write_user_env_vars(
        {
            "STACKWRIGHT_DEFAULT_USER": user,
            "STACKWRIGHT_DEFAULT_GROUP": group,
            "STACKWRIGHT_DEFAULT_WORKERS": str(workers),
        }
    )

    _console.print(f"[green]Saved defaults to:[/green] {env_path}")
