"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import CheckReport, ManifestDiff, Severity

_SEVERITY_STYLE = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "dim",
}


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida."""

    title = Text("stackwright", style="bold cyan")
    subtitle = Text("gunicorn • systemd socket • nginx • consistency", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_artifacts_table() -> Table:
    table = Table(title="Artifacts")
    table.add_column("Kind", style="cyan", no_wrap=True)
    table.add_column("Install path", style="white")
    table.add_column("Written to", style="magenta")
    table.add_column("Status", style="green")
    return table


def build_findings_table(report: CheckReport) -> Table:
    order = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 2}
    table = Table(title="Consistency check")
    table.add_column("Severity", no_wrap=True)
    table.add_column("Rule", style="cyan", no_wrap=True)
    table.add_column("Message", style="white")
    table.add_column("Artifacts", style="dim")
    for finding in sorted(report.findings, key=lambda f: (order[f.severity], f.rule)):
        table.add_row(
            Text(finding.severity.value, style=_SEVERITY_STYLE[finding.severity]),
            finding.rule,
            finding.message,
            ", ".join(finding.artifacts),
        )
    return table


def build_summary_panel(report: CheckReport) -> Panel:
    if report.ok:
        body = Text(f"OK: no errors, {len(report.warnings)} warning(s)", style="bold green")
        border = "green"
    else:
        body = Text(f"{len(report.errors)} error(s), {len(report.warnings)} warning(s)", style="bold red")
        border = "red"
    if report.sources:
        body.append("\n")
        for kind, path in sorted(report.sources.items()):
            body.append(f"\n{kind}: {path}", style="dim")
    return Panel(body, title="Result", border_style=border)


def build_manifest_diff_table(diff: ManifestDiff, left_label: str, right_label: str) -> Table:
    table = Table(title="Requirements diff")
    table.add_column("Package", style="cyan", no_wrap=True)
    table.add_column(left_label, style="white")
    table.add_column(right_label, style="white")
    table.add_column("Problem", style="red")
    for name in diff.missing:
        table.add_row(name, "present", "-", "missing on the right")
    for name in diff.extra:
        table.add_row(name, "-", "present", "extra on the right")
    for name, (left, right) in sorted(diff.mismatched.items()):
        table.add_row(name, left or "(any)", right or "(any)", "version differs")
    return table
