"""Contrato de renderers de artefactos.

Por qué Protocol:
- Cada artefacto (service, socket, site, requirements, settings) tiene su
  propio renderer intercambiable y testeable por separado.
- El pipeline solo depende de este contrato, no de Jinja2.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import DeploymentSpec, RenderedArtifact


@runtime_checkable
class ArtifactRenderer(Protocol):
    """Contrato mínimo para un renderer.

    Reglas de diseño:
    - `render` es puro: no escribe en disco.
    - Devuelve un único `RenderedArtifact` por llamada.
    """

    kind: str

    def render(self, spec: DeploymentSpec) -> RenderedArtifact:
        """Renderiza el artefacto para `spec`."""

        ...
