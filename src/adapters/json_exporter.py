"""Exportación JSON del reporte de chequeo.

Por qué JSON:
- Permite integrar el chequeo en CI o en otros pipelines de despliegue.
"""

from __future__ import annotations

import json
from pathlib import Path

from core.domain.models import CheckReport


def report_payload(report: CheckReport) -> dict:
    payload = report.model_dump(mode="json")
    payload["ok"] = report.ok
    payload["error_count"] = len(report.errors)
    payload["warning_count"] = len(report.warnings)
    return payload


def export_report_json(*, report: CheckReport, output_path: Path) -> Path:
    """Exporta `CheckReport` a JSON UTF-8 con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps(report_payload(report), ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
