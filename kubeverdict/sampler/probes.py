"""Backend probes.

A probe performs exactly one health check and reports the outcome; it never
retries.  ``HttpProbe`` checks an API path over httpx, either reusing one
connection pool for the whole run or dialing a new connection every time.
"""

from __future__ import annotations

import ssl
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

import httpx

from kubeverdict.errors import ProbeTimeoutError
from kubeverdict.observability.logging import get_logger

_logger = get_logger("sampler.probes")

# 401/403 still prove the server is up and answering.
_REACHABLE_STATUS = frozenset({401, 403})


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one health check."""

    succeeded: bool
    latency: timedelta | None = None
    detail: str = ""


Probe = Callable[[], Awaitable[ProbeResult]]


class HttpProbe:
    """GET ``path`` on ``host`` and report whether the backend answered.

    Args:
        name:              Backend name used in sample details and logs.
        host:              Base URL of the server, e.g. ``https://api.example:6443``.
        path:              Request path.
        reuse_connections: Keep one AsyncClient for every probe when True;
                           open a fresh connection per probe when False.
        headers:           Extra request headers (e.g. Authorization).
        verify:            TLS verification passed through to httpx.
        timeout:           Request timeout in seconds.
    """

    def __init__(
        self,
        name: str,
        host: str,
        path: str,
        reuse_connections: bool = False,
        headers: dict[str, str] | None = None,
        verify: ssl.SSLContext | bool = True,
        timeout: float = 5.0,
    ) -> None:
        if not host:
            raise ValueError("Probe host must not be empty")
        self.name = name
        self._url = host.rstrip("/") + "/" + path.lstrip("/")
        self._reuse = reuse_connections
        self._headers = headers or {}
        self._verify = verify
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(headers=self._headers, verify=self._verify, timeout=self._timeout)

    async def __call__(self) -> ProbeResult:
        t_start = time.monotonic()
        try:
            if self._reuse:
                if self._client is None:
                    self._client = self._new_client()
                response = await self._client.get(self._url)
            else:
                async with self._new_client() as client:
                    response = await client.get(self._url, headers={"Connection": "close"})
        except httpx.TimeoutException as exc:
            raise ProbeTimeoutError(self.name, self._timeout) from exc
        except httpx.HTTPError as exc:
            return ProbeResult(
                succeeded=False,
                latency=timedelta(seconds=time.monotonic() - t_start),
                detail=f"{type(exc).__name__}: {exc}",
            )

        latency = timedelta(seconds=time.monotonic() - t_start)
        status = response.status_code
        if status < 400 or status in _REACHABLE_STATUS:
            return ProbeResult(succeeded=True, latency=latency, detail=f"status {status}")
        return ProbeResult(succeeded=False, latency=latency, detail=f"status {status}: {response.text[:200]}")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
