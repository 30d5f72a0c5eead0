"""
HTTP transport that re-checks the destination address at connect time.

``validate_url`` runs before a request is sent, but the connection pool
resolves the host again when it dials. A name whose records change between
the two lookups (DNS rebinding) would otherwise reach a private address.
``SSRFSafeBackend`` resolves once, rejects the host unless every address is
public, and dials that checked address. TLS still verifies against the
original hostname.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

import httpcore
import httpx

from toolgate.exceptions import ERR_SSRF_BLOCKED, DomainError
from toolgate.security.ssrf import Resolver, default_resolve, resolve_public

logger = logging.getLogger(__name__)


class SSRFSafeBackend(httpcore.AsyncNetworkBackend):
    """Network backend that only dials addresses it has just checked."""

    def __init__(
        self,
        resolve: Resolver = default_resolve,
        inner: httpcore.AsyncNetworkBackend | None = None,
    ):
        self._resolve = resolve
        self._inner = inner or httpcore.AnyIOBackend()

    async def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: float | None = None,
        local_address: str | None = None,
        socket_options: Iterable[httpcore.SOCKET_OPTION] | None = None,
    ) -> httpcore.AsyncNetworkStream:
        addresses = await asyncio.to_thread(resolve_public, host, self._resolve)
        logger.debug("connect %s:%d via checked address", host, port)
        return await self._inner.connect_tcp(
            str(addresses[0]),
            port,
            timeout=timeout,
            local_address=local_address,
            socket_options=socket_options,
        )

    async def connect_unix_socket(
        self,
        path: str,
        timeout: float | None = None,
        socket_options: Iterable[httpcore.SOCKET_OPTION] | None = None,
    ) -> httpcore.AsyncNetworkStream:
        raise DomainError("validate_url", ERR_SSRF_BLOCKED, "unix sockets not allowed")

    async def sleep(self, seconds: float) -> None:
        await self._inner.sleep(seconds)


class SSRFSafeTransport(httpx.AsyncHTTPTransport):
    """
    ``httpx.AsyncHTTPTransport`` whose connection pool dials through
    ``SSRFSafeBackend``. No proxy support: a proxy would do its own lookup.
    """

    def __init__(
        self,
        resolve: Resolver = default_resolve,
        network_backend: httpcore.AsyncNetworkBackend | None = None,
        verify: bool = True,
    ):
        super().__init__(verify=verify, trust_env=False)
        # httpx has no option for the network backend; rebuild the pool with it.
        self._pool = httpcore.AsyncConnectionPool(
            ssl_context=httpx.create_ssl_context(verify=verify, trust_env=False),
            network_backend=SSRFSafeBackend(resolve, network_backend),
        )


__all__ = ["SSRFSafeBackend", "SSRFSafeTransport"]
