"""Renderers de ficheros del proyecto Python (requirements + settings)."""

from __future__ import annotations

import posixpath

from adapters.renderers.base import render_template
from core.domain.models import DeploymentSpec, RenderedArtifact, normalize_name
from core.interfaces.renderer import ArtifactRenderer


class RequirementsRenderer(ArtifactRenderer):
    """`requirements.txt` con versiones exactas, ordenado por nombre normalizado."""

    kind = "requirements"

    def render(self, spec: DeploymentSpec) -> RenderedArtifact:
        items = sorted(spec.requirements.items(), key=lambda kv: normalize_name(kv[0]))
        content = render_template(
            "requirements.txt.j2",
            project_name=spec.project_name,
            requirements=items,
        )
        return RenderedArtifact(
            kind=self.kind,
            filename="requirements.txt",
            install_path=posixpath.join(spec.working_dir, "requirements.txt"),
            content=content,
        )


class DjangoSettingsRenderer(ArtifactRenderer):
    """`<project>/production_settings.py` con ALLOWED_HOSTS y estáticos."""

    kind = "settings"

    def render(self, spec: DeploymentSpec) -> RenderedArtifact:
        content = render_template(
            "production_settings.py.j2",
            project_name=spec.project_name,
            allowed_hosts=spec.server_names,
            static_url=spec.static_url,
            static_root=spec.static_root,
        )
        return RenderedArtifact(
            kind=self.kind,
            filename="production_settings.py",
            install_path=posixpath.join(spec.working_dir, spec.project_name, "production_settings.py"),
            content=content,
        )
