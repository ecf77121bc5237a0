"""Renderer del server block de nginx."""

from __future__ import annotations

import posixpath

from adapters.renderers.base import render_template
from core.config import AppSettings
from core.domain import naming
from core.domain.models import DeploymentSpec, RenderedArtifact
from core.interfaces.renderer import ArtifactRenderer


def static_directive(static_url: str, static_root: str) -> tuple[str, str]:
    """Devuelve `("root", dir)` o `("alias", dir/)` para servir `static_root`.

    `root` solo sirve si `static_root` termina en el prefijo de la URL
    (nginx concatena root + URI); en otro caso hace falta `alias`.
    """

    suffix = static_url.rstrip("/")
    if suffix and static_root.endswith(suffix):
        parent = static_root[: -len(suffix)] or "/"
        return "root", parent
    return "alias", static_root.rstrip("/") + "/"


class NginxSiteRenderer(ArtifactRenderer):
    """Site en `sites-available/<repo>` que enruta estáticos y proxy al socket."""

    kind = "site"

    def __init__(self, settings: AppSettings | None = None) -> None:
        self._settings = settings or AppSettings()

    def render(self, spec: DeploymentSpec) -> RenderedArtifact:
        filename = naming.site_name(spec.repo_name)
        mode, static_dir = static_directive(spec.static_url, spec.static_root or "")
        content = render_template(
            "nginx_site.conf.j2",
            tls=spec.tls,
            listen_port=spec.listen_port,
            server_names=spec.server_names,
            static_url=spec.static_url,
            static_alias=static_dir if mode == "alias" else None,
            static_parent=static_dir if mode == "root" else None,
            proxy_target=naming.proxy_target(spec.socket_path or ""),
            cert_dir=posixpath.join(self._settings.letsencrypt_dir, spec.domain),
        )
        return RenderedArtifact(
            kind=self.kind,
            filename=filename,
            install_path=posixpath.join(self._settings.nginx_sites_dir, filename),
            content=content,
        )
