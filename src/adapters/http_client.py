"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers y redirects para `probe`.
- Facilita testeo: se puede inyectar un `httpx.MockTransport`.
"""

from __future__ import annotations

import httpx

from core.config import AppSettings


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    follow_redirects: bool = False,
) -> httpx.AsyncClient:
    """Cliente para hablar con el nginx desplegado.

    Sin redirects por defecto: `probe` quiere ver el 301 de HTTP a HTTPS
    que deja certbot, no la página final.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "*/*",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=follow_redirects,
        headers=headers,
        transport=transport,
    )
