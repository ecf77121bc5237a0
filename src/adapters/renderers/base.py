"""Entorno Jinja2 compartido por los renderers.

Las plantillas viven en `adapters/templates` y se renderizan con
`StrictUndefined`: una variable ausente es un error, nunca un hueco vacío en
un unit file.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from core.errors import TemplateRenderError

_TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_env() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.filters["pyrepr"] = repr
    return env


def render_template(name: str, **context: Any) -> str:
    """Renderiza `name` y traduce errores de Jinja2 a `TemplateRenderError`."""

    logger.debug("rendering template %s", name)
    try:
        return get_env().get_template(name).render(**context)
    except TemplateError as exc:
        raise TemplateRenderError(f"{name}: {exc}") from exc
