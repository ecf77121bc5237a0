"""Parser de manifests de dependencias (`requirements.txt` / `pip freeze`).

Implementa el subset práctico que aparece en manifests fijados:
- `name==version`, `name[extra]==version`
- marcadores de entorno tras `;` y `--hash=...` al final
- comentarios y líneas vacías
- opciones (`-r`, `-e`, `--index-url`...) no son requisitos: `option_lines`
  las devuelve aparte para que el chequeo las reporte
"""

from __future__ import annotations

import logging
import re
from typing import Iterator

from core.domain.models import ManifestDiff, Requirement
from core.errors import ManifestError

logger = logging.getLogger(__name__)

_REQ_RE = re.compile(
    r"""^
    (?P<name>[A-Za-z0-9][A-Za-z0-9._-]*)
    (?:\[[^\]]*\])?
    \s*
    (?:(?P<op>===|==|~=|!=|<=|>=|<|>)\s*(?P<version>[^\s,;]+))?
    (?P<more>\s*,.*)?
    $""",
    re.VERBOSE,
)


def _strip_line(raw: str) -> str:
    line = raw.split(" #", 1)[0] if " #" in raw else raw
    line = line.strip()
    if line.startswith("#"):
        return ""
    if ";" in line:
        line = line.split(";", 1)[0].strip()
    if " --hash" in line:
        line = line.split(" --hash", 1)[0].strip()
    return line


def _lines(text: str) -> Iterator[tuple[int, str]]:
    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = _strip_line(raw.rstrip("\\").rstrip())
        if line:
            yield line_no, line


def is_editable(option: str) -> bool:
    return option == "-e" or option.startswith(("-e ", "--editable"))


def option_lines(text: str) -> list[tuple[int, str]]:
    """Líneas de opciones de pip (`-e`, `-r`, `--index-url`...) con su número."""

    return [(line_no, line) for line_no, line in _lines(text) if line.startswith("-")]


def parse_requirements(text: str) -> list[Requirement]:
    requirements: list[Requirement] = []
    for line_no, line in _lines(text):
        if line.startswith("-"):
            logger.debug("skipping option line %d: %s", line_no, line)
            continue
        # `name @ url` (PEP 508 direct reference)
        if " @ " in line:
            name, url = (part.strip() for part in line.split(" @ ", 1))
            name = name.split("[", 1)[0].strip()
            requirements.append(Requirement(name=name, operator="@", url=url, line_no=line_no))
            continue
        match = _REQ_RE.match(line)
        if match is None:
            raise ManifestError(f"cannot parse requirement {line!r}", line=line_no)
        operator = match.group("op")
        version = match.group("version")
        if match.group("more"):
            # Rango compuesto (`>=1,<2`): nunca es una versión fijada.
            operator = f"{operator or ''}{version or ''}{match.group('more').strip()}"
            version = None
        requirements.append(
            Requirement(
                name=match.group("name"),
                operator=operator,
                version=version,
                line_no=line_no,
            )
        )
    return requirements


def duplicates(requirements: list[Requirement]) -> dict[str, list[int]]:
    seen: dict[str, list[int]] = {}
    for req in requirements:
        seen.setdefault(req.key, []).append(req.line_no)
    return {key: lines for key, lines in seen.items() if len(lines) > 1}


def compare_manifests(left: list[Requirement], right: list[Requirement]) -> ManifestDiff:
    """Compara dos manifests por nombre normalizado (izquierda = referencia)."""

    left_map = {r.key: r.specifier for r in left}
    right_map = {r.key: r.specifier for r in right}

    diff = ManifestDiff()
    diff.missing = sorted(k for k in left_map if k not in right_map)
    diff.extra = sorted(k for k in right_map if k not in left_map)
    for key in sorted(left_map.keys() & right_map.keys()):
        if left_map[key] != right_map[key]:
            diff.mismatched[key] = (left_map[key], right_map[key])
    return diff
