"""Configuración de logging (stdlib + RichHandler).

Los módulos usan `logging.getLogger(__name__)`; solo la CLI llama a
`configure_logging` una vez al arrancar.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_CONFIGURED = False


def configure_logging(level: str | int = "WARNING", *, verbose: bool = False, console: Console | None = None) -> None:
    global _CONFIGURED

    if verbose:
        level = logging.DEBUG
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    root = logging.getLogger()
    if _CONFIGURED:
        root.setLevel(level)
        return

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
    root.setLevel(level)
    _CONFIGURED = True
