from __future__ import annotations

import pytest

from adapters.parsers.nginx_conf import parse_nginx, site_facts, socket_from_proxy_target
from core.errors import NginxParseError
from samples import SITE

CERTBOT_SITE = """\
server {
    server_name example.com www.example.com;

    location /static/ {
        root /home/ubuntu/myrepo;
    }

    location / {
        include proxy_params;
        proxy_pass http://unix:/run/myrepo.sock;
    }

    listen 443 ssl; # managed by Certbot
    ssl_certificate /etc/letsencrypt/live/example.com/fullchain.pem; # managed by Certbot
    ssl_certificate_key /etc/letsencrypt/live/example.com/privkey.pem; # managed by Certbot
}

server {
    if ($host = www.example.com) {
        return 301 https://$host$request_uri;
    } # managed by Certbot

    listen 80;
    server_name example.com www.example.com;
    return 404; # managed by Certbot
}
"""

UPSTREAM_SITE = """\
upstream app_server {
    server unix:/run/other.sock fail_timeout=0;
}

server {
    listen 80 default_server;
    server_name _;
    add_header X-Note "quoted ; value {braces}";

    location /static/ {
        alias /var/www/static/;
    }

    location / {
        proxy_pass http://app_server;
    }
}
"""


def test_site_facts_from_sample() -> None:
    facts = site_facts(parse_nginx(SITE))
    assert facts.server_names == ["example.com", "www.example.com"]
    assert facts.listen == ["80"]
    assert facts.proxy_targets == ["http://unix:/run/myrepo.sock"]
    assert facts.socket_paths == ["/run/myrepo.sock"]
    assert facts.static_locations == {"/static/": ("root", "/home/ubuntu/myrepo")}
    assert facts.ssl is False


def test_certbot_modified_site() -> None:
    facts = site_facts(parse_nginx(CERTBOT_SITE))
    assert facts.server_names == ["example.com", "www.example.com"]
    assert facts.ssl is True
    assert sorted(facts.listen) == ["443 ssl", "80"]
    assert facts.socket_paths == ["/run/myrepo.sock"]


def test_upstream_is_resolved_and_quotes_are_kept() -> None:
    directives = parse_nginx(UPSTREAM_SITE)
    facts = site_facts(directives)
    assert facts.server_names == []
    assert facts.proxy_targets == ["unix:/run/other.sock"]
    assert facts.socket_paths == ["/run/other.sock"]
    assert facts.static_locations["/static/"] == ("alias", "/var/www/static/")
    server = directives[1]
    header = server.children("add_header")[0]
    assert header.args == ["X-Note", "quoted ; value {braces}"]


@pytest.mark.parametrize(
    "target, expected",
    [
        ("http://unix:/run/a.sock", "/run/a.sock"),
        ("http://unix:/run/a.sock:/app/", "/run/a.sock"),
        ("unix:/run/a.sock", "/run/a.sock"),
        ("http://127.0.0.1:8000", None),
    ],
)
def test_socket_from_proxy_target(target: str, expected: str | None) -> None:
    assert socket_from_proxy_target(target) == expected


@pytest.mark.parametrize(
    "text",
    [
        "server {\n    listen 80;\n",
        "server {\n    listen 80\n}\n",
        "listen 80;\n}\n",
        'add_header X "unterminated;\n',
    ],
)
def test_parse_errors(text: str) -> None:
    with pytest.raises(NginxParseError):
        parse_nginx(text)


def test_server_names_are_case_insensitive() -> None:
    facts = site_facts(parse_nginx(SITE.replace("server_name example.com", "server_name Example.COM")))
    assert facts.server_names == ["example.com", "www.example.com"]
