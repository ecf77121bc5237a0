from __future__ import annotations

import pytest

from adapters.renderers import (
    DjangoSettingsRenderer,
    NginxSiteRenderer,
    RequirementsRenderer,
    ServiceUnitRenderer,
    SocketUnitRenderer,
)
from adapters.renderers.base import render_template
from adapters.renderers.nginx import static_directive
from core.domain.models import DeploymentSpec
from core.errors import TemplateRenderError
from core.interfaces.renderer import ArtifactRenderer


def test_socket_unit(spec, settings) -> None:
    artifact = SocketUnitRenderer(settings).render(spec)
    assert artifact.kind == "socket"
    assert artifact.filename == "myrepo.socket"
    assert artifact.install_path == "/etc/systemd/system/myrepo.socket"
    assert "ListenStream=/run/myrepo.sock\n" in artifact.content
    assert "WantedBy=sockets.target" in artifact.content


def test_service_unit(spec, settings) -> None:
    artifact = ServiceUnitRenderer(settings).render(spec)
    assert artifact.filename == "myrepo.service"
    content = artifact.content
    assert "Requires=myrepo.socket\n" in content
    assert "User=ubuntu\n" in content
    assert "Group=www-data\n" in content
    assert "WorkingDirectory=/home/ubuntu/myrepo\n" in content
    assert "ExecStart=/home/ubuntu/myrepo/venv/bin/gunicorn \\\n" in content
    assert "--workers 3 \\\n" in content
    assert "--bind unix:/run/myrepo.sock \\\n" in content
    assert content.rstrip().endswith("WantedBy=multi-user.target")
    assert "myproj.wsgi:application\n" in content


def test_site_block(spec, settings) -> None:
    artifact = NginxSiteRenderer(settings).render(spec)
    assert artifact.install_path == "/etc/nginx/sites-available/myrepo"
    content = artifact.content
    assert "    listen 80;\n" in content
    assert "    server_name example.com www.example.com;\n" in content
    assert "        root /home/ubuntu/myrepo;\n" in content
    assert "        proxy_pass http://unix:/run/myrepo.sock;\n" in content
    assert "ssl" not in content


def test_site_block_tls(spec, settings) -> None:
    tls_spec = spec.model_copy(update={"tls": True})
    content = NginxSiteRenderer(settings).render(tls_spec).content
    assert "listen 443 ssl; # managed by Certbot" in content
    assert "ssl_certificate /etc/letsencrypt/live/example.com/fullchain.pem;" in content
    assert "if ($host = www.example.com) {" in content
    assert content.count("server {") == 2


def test_static_directive() -> None:
    assert static_directive("/static/", "/srv/app/static") == ("root", "/srv/app")
    assert static_directive("/static/", "/var/www/assets") == ("alias", "/var/www/assets/")
    assert static_directive("/static/", "/static") == ("root", "/")


def test_site_uses_alias_when_root_cannot_work(settings) -> None:
    spec = DeploymentSpec(
        repo_name="r",
        project_name="p",
        working_dir="/srv/r",
        domain="example.com",
        static_root="/var/www/r-assets",
    )
    content = NginxSiteRenderer(settings).render(spec).content
    assert "        alias /var/www/r-assets/;\n" in content


def test_requirements_sorted_and_pinned(spec) -> None:
    spec = spec.model_copy(update={"requirements": {"gunicorn": "21.2.0", "asgiref": "3.7.2", "Django": "4.2.7"}})
    artifact = RequirementsRenderer().render(spec)
    lines = [line for line in artifact.content.splitlines() if not line.startswith("#")]
    assert lines == ["asgiref==3.7.2", "Django==4.2.7", "gunicorn==21.2.0"]
    assert artifact.install_path == "/home/ubuntu/myrepo/requirements.txt"


def test_django_settings(spec) -> None:
    artifact = DjangoSettingsRenderer().render(spec)
    assert artifact.install_path == "/home/ubuntu/myrepo/myproj/production_settings.py"
    assert "    'example.com',\n    'www.example.com',\n" in artifact.content
    assert "STATIC_ROOT = '/home/ubuntu/myrepo/static'" in artifact.content
    compile(artifact.content, "production_settings.py", "exec")


def test_renderers_follow_protocol(settings) -> None:
    for renderer in (
        SocketUnitRenderer(settings),
        ServiceUnitRenderer(settings),
        NginxSiteRenderer(settings),
        RequirementsRenderer(),
        DjangoSettingsRenderer(),
    ):
        assert isinstance(renderer, ArtifactRenderer)


def test_missing_variable_is_an_error() -> None:
    with pytest.raises(TemplateRenderError):
        render_template("gunicorn.socket.j2", repo_name="x")
