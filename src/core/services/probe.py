"""Post-deployment probe.

Confirms from the outside that every server name resolves (optionally to the
expected host address) and that nginx answers for it. Only reads; it never
changes DNS or the host.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from dataclasses import dataclass, field
from typing import Awaitable, Callable

import httpx

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.models import DeploymentSpec

logger = logging.getLogger(__name__)

Resolver = Callable[[str], Awaitable[list[str]]]


@dataclass
class HostProbe:
    host: str
    addresses: list[str] = field(default_factory=list)
    dns_error: str | None = None
    dns_matches: bool | None = None
    url: str | None = None
    status_code: int | None = None
    location: str | None = None
    http_error: str | None = None

    @property
    def ok(self) -> bool:
        if self.dns_error or self.http_error:
            return False
        if self.dns_matches is False:
            return False
        # 502 means nginx is up but the socket/gunicorn behind it is not.
        return self.status_code is not None and self.status_code < 500


async def system_resolver(host: str) -> list[str]:
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, None, proto=socket.IPPROTO_TCP)
    addresses: list[str] = []
    for info in infos:
        address = str(info[4][0])
        if address not in addresses:
            addresses.append(address)
    return addresses


async def probe_host(
    host: str,
    *,
    client: httpx.AsyncClient,
    scheme: str = "http",
    expect_ip: str | None = None,
    resolver: Resolver = system_resolver,
) -> HostProbe:
    result = HostProbe(host=host)
    try:
        result.addresses = await resolver(host)
    except OSError as exc:
        result.dns_error = str(exc) or exc.__class__.__name__
        return result
    if expect_ip is not None:
        result.dns_matches = expect_ip in result.addresses

    result.url = f"{scheme}://{host}/"
    try:
        response = await client.get(result.url)
    except httpx.HTTPError as exc:
        result.http_error = str(exc) or exc.__class__.__name__
        return result
    result.status_code = response.status_code
    result.location = response.headers.get("location")
    logger.debug("probe %s -> %s", result.url, result.status_code)
    return result


async def probe_deployment(
    spec: DeploymentSpec,
    *,
    settings: AppSettings | None = None,
    expect_ip: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    resolver: Resolver = system_resolver,
) -> list[HostProbe]:
    scheme = "https" if spec.tls else "http"
    async with build_async_client(settings, transport=transport) as client:
        return list(
            await asyncio.gather(
                *(
                    probe_host(name, client=client, scheme=scheme, expect_ip=expect_ip, resolver=resolver)
                    for name in spec.server_names
                )
            )
        )


def run_probe(
    spec: DeploymentSpec,
    *,
    settings: AppSettings | None = None,
    expect_ip: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    resolver: Resolver = system_resolver,
) -> list[HostProbe]:
    return asyncio.run(
        probe_deployment(spec, settings=settings, expect_ip=expect_ip, transport=transport, resolver=resolver)
    )
