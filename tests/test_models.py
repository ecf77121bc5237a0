from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.domain import naming
from core.domain.models import DeploymentSpec, ManifestDiff, Requirement, normalize_name


def test_derived_defaults(spec: DeploymentSpec) -> None:
    assert spec.socket_path == "/run/myrepo.sock"
    assert spec.venv_dir == "/home/ubuntu/myrepo/venv"
    assert spec.static_root == "/home/ubuntu/myrepo/static"
    assert spec.server_names == ["example.com", "www.example.com"]
    assert spec.socket_unit == "myrepo.socket"
    assert spec.service_unit == "myrepo.service"
    assert spec.wsgi_app == "myproj.wsgi:application"
    assert spec.gunicorn_path == "/home/ubuntu/myrepo/venv/bin/gunicorn"


def test_domain_is_normalized_and_www_not_doubled() -> None:
    spec = DeploymentSpec(repo_name="r", project_name="p", working_dir="/srv/r/", domain="WWW.Example.COM.")
    assert spec.domain == "www.example.com"
    assert spec.working_dir == "/srv/r"
    assert spec.server_names == ["www.example.com"]


def test_explicit_extra_domains_and_socket() -> None:
    spec = DeploymentSpec(
        repo_name="r",
        project_name="p",
        working_dir="/srv/r",
        domain="example.com",
        extra_domains=["api.example.com", "example.com"],
        socket_path="/run/gunicorn/r.sock",
    )
    assert spec.server_names == ["example.com", "api.example.com"]
    assert spec.socket_path == "/run/gunicorn/r.sock"


@pytest.mark.parametrize(
    "field, value",
    [
        ("repo_name", "bad/name"),
        ("project_name", "my-proj"),
        ("working_dir", "relative/path"),
        ("domain", "not a domain"),
        ("workers", 0),
        ("static_url", "static"),
        ("static_url", "/static files/"),
        ("user", "ubuntu\nExecStartPre=/bin/sh -c id"),
        ("user", "deploy user"),
        ("group", "www-data\n[Install]"),
        ("access_log", "/var/log/app.log\rWorkingDirectory=/"),
        ("working_dir", "/srv/r\nUser=root"),
        ("venv_dir", "/srv/r/my venv"),
        ("socket_path", "/run/a.sock:80"),
        ("socket_path", "/run/a.sock;"),
        ("socket_path", "/run/{a}.sock"),
        ("socket_path", "/run/a sock"),
    ],
)
def test_invalid_values_are_rejected(field: str, value: object) -> None:
    data = {"repo_name": "r", "project_name": "p", "working_dir": "/srv/r", "domain": "example.com"}
    data[field] = value
    with pytest.raises(ValidationError):
        DeploymentSpec(**data)


def test_naming_helpers() -> None:
    assert naming.unix_bind("/run/a.sock") == "unix:/run/a.sock"
    assert naming.proxy_target("/run/a.sock") == "http://unix:/run/a.sock"
    assert naming.unit_stem("a.socket") == "a"
    assert naming.unit_stem("a.service") == "a"
    assert naming.unit_stem("a.timer") == "a.timer"


def test_requirement_key_and_pinned() -> None:
    req = Requirement(name="Django_REST.framework", operator="==", version="3.14.0")
    assert req.key == "django-rest-framework"
    assert req.pinned
    assert not Requirement(name="x", operator=">=", version="1").pinned
    assert normalize_name("Foo__Bar") == "foo-bar"


def test_manifest_diff_identical() -> None:
    assert ManifestDiff().identical
    assert not ManifestDiff(missing=["x"]).identical


def test_requirement_specifier() -> None:
    assert Requirement(name="x", operator="==", version="1.0").specifier == "==1.0"
    assert Requirement(name="x", operator=">=", version="1.0").specifier == ">=1.0"
    assert Requirement(name="x", operator="@", url="https://h/x.tar.gz").specifier == "@ https://h/x.tar.gz"
    assert Requirement(name="x").specifier is None
