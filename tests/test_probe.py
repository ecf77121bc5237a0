from __future__ import annotations

import httpx

from core.services.probe import run_probe


def _resolver(table: dict[str, list[str]]):
    async def resolve(host: str) -> list[str]:
        if host not in table:
            raise OSError(f"Name or service not known: {host}")
        return table[host]

    return resolve


def test_probe_all_hosts_ok(spec, settings) -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, text="ok")

    results = run_probe(
        spec,
        settings=settings,
        expect_ip="203.0.113.7",
        transport=httpx.MockTransport(handler),
        resolver=_resolver({"example.com": ["203.0.113.7"], "www.example.com": ["203.0.113.7"]}),
    )
    assert [r.host for r in results] == ["example.com", "www.example.com"]
    assert all(r.ok for r in results)
    assert sorted(seen) == ["http://example.com/", "http://www.example.com/"]


def test_probe_reports_dns_and_gateway_problems(spec, settings) -> None:
    tls_spec = spec.model_copy(update={"tls": True})

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502)

    results = {
        r.host: r
        for r in run_probe(
            tls_spec,
            settings=settings,
            expect_ip="203.0.113.7",
            transport=httpx.MockTransport(handler),
            resolver=_resolver({"example.com": ["198.51.100.1"]}),
        )
    }
    apex = results["example.com"]
    assert apex.dns_matches is False
    assert apex.url == "https://example.com/"
    assert apex.status_code == 502
    assert not apex.ok

    www = results["www.example.com"]
    assert www.dns_error is not None
    assert www.status_code is None
    assert not www.ok


def test_probe_keeps_redirect_location(spec, settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(301, headers={"location": f"https://{request.url.host}/"})

    results = run_probe(
        spec,
        settings=settings,
        transport=httpx.MockTransport(handler),
        resolver=_resolver({"example.com": ["203.0.113.7"], "www.example.com": ["203.0.113.7"]}),
    )
    assert results[0].status_code == 301
    assert results[0].location == "https://example.com/"
    assert results[0].dns_matches is None
    assert results[0].ok


def test_probe_connection_error(spec, settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    results = run_probe(
        spec,
        settings=settings,
        transport=httpx.MockTransport(handler),
        resolver=_resolver({"example.com": ["203.0.113.7"], "www.example.com": ["203.0.113.7"]}),
    )
    assert all(r.http_error for r in results)
    assert not any(r.ok for r in results)
