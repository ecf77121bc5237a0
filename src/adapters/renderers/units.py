"""Renderers de unit files de systemd (socket + service)."""

from __future__ import annotations

import posixpath

from adapters.renderers.base import render_template
from core.config import AppSettings
from core.domain import naming
from core.domain.models import DeploymentSpec, RenderedArtifact
from core.interfaces.renderer import ArtifactRenderer


class SocketUnitRenderer(ArtifactRenderer):
    """`<repo>.socket`: enlaza el socket antes de que arranque gunicorn."""

    kind = "socket"

    def __init__(self, settings: AppSettings | None = None) -> None:
        self._settings = settings or AppSettings()

    def render(self, spec: DeploymentSpec) -> RenderedArtifact:
        filename = spec.socket_unit
        content = render_template(
            "gunicorn.socket.j2",
            repo_name=spec.repo_name,
            socket_path=spec.socket_path,
        )
        return RenderedArtifact(
            kind=self.kind,
            filename=filename,
            install_path=posixpath.join(self._settings.systemd_dir, filename),
            content=content,
        )


class ServiceUnitRenderer(ArtifactRenderer):
    """`<repo>.service`: arranca gunicorn ligado al socket del `.socket`."""

    kind = "service"

    def __init__(self, settings: AppSettings | None = None) -> None:
        self._settings = settings or AppSettings()

    def render(self, spec: DeploymentSpec) -> RenderedArtifact:
        filename = spec.service_unit
        content = render_template(
            "gunicorn.service.j2",
            repo_name=spec.repo_name,
            socket_unit=spec.socket_unit,
            user=spec.user,
            group=spec.group,
            working_dir=spec.working_dir,
            gunicorn_path=spec.gunicorn_path,
            access_log=spec.access_log,
            workers=spec.workers,
            bind=naming.unix_bind(spec.socket_path or ""),
            wsgi_app=spec.wsgi_app,
        )
        return RenderedArtifact(
            kind=self.kind,
            filename=filename,
            install_path=posixpath.join(self._settings.systemd_dir, filename),
            content=content,
        )
