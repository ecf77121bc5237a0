"""Renderers concretos de artefactos.

Cada módulo implementa `core.interfaces.renderer.ArtifactRenderer`.
"""

from adapters.renderers.nginx import NginxSiteRenderer
from adapters.renderers.python_files import DjangoSettingsRenderer, RequirementsRenderer
from adapters.renderers.units import ServiceUnitRenderer, SocketUnitRenderer

__all__ = [
    "DjangoSettingsRenderer",
    "NginxSiteRenderer",
    "RequirementsRenderer",
    "ServiceUnitRenderer",
    "SocketUnitRenderer",
]
