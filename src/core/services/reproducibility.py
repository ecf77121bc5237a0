"""Comparación de manifests entre dos instalaciones.

Un manifest fijado es reproducible si el `pip freeze` del host remoto lista
exactamente los mismos paquetes y versiones que el manifest de desarrollo.
"""

from __future__ import annotations

import logging
from pathlib import Path

from adapters.parsers.requirements import compare_manifests, parse_requirements
from core.domain.models import ManifestDiff
from core.errors import ManifestError

logger = logging.getLogger(__name__)


def compare_requirement_texts(left_text: str, right_text: str) -> ManifestDiff:
    diff = compare_manifests(parse_requirements(left_text), parse_requirements(right_text))
    logger.info(
        "manifest diff: %d missing, %d extra, %d mismatched",
        len(diff.missing),
        len(diff.extra),
        len(diff.mismatched),
    )
    return diff


def compare_requirement_files(left: Path, right: Path) -> ManifestDiff:
    try:
        left_text = left.read_text(encoding="utf-8")
        right_text = right.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestError(f"cannot read manifest: {exc}") from exc
    return compare_requirement_texts(left_text, right_text)
