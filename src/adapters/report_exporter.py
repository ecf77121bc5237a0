"""Exportación HTML del reporte de chequeo.

Por qué está en adapters:
- HTML es un detalle de presentación (Jinja2); el Core solo conoce `CheckReport`.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from core.domain.models import CheckReport, Severity

_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def _get_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
    )


def render_report_html(*, report: CheckReport, title: str = "stackwright check") -> str:
    """Renderiza un HTML autocontenido para el reporte."""

    generated_at_local = datetime.now().astimezone().isoformat(timespec="seconds")
    order = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 2}
    findings = sorted(report.findings, key=lambda f: (order[f.severity], f.rule))

    template = _get_env().get_template("report.html")
    return template.render(
        title=title,
        report=report,
        findings=findings,
        generated_at=report.checked_at.isoformat(timespec="seconds"),
        generated_at_local=generated_at_local,
        error_count=len(report.errors),
        warning_count=len(report.warnings),
    )


def export_report_html(*, report: CheckReport, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_report_html(report=report), encoding="utf-8")
    return output_path
