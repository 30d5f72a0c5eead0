"""
URL validation against server-side request forgery.

A model-chosen URL is accepted only if its scheme is http(s) and every
address its host resolves to is public. Literal IPs are checked directly,
including legacy IPv4 spellings (``2130706433``, ``0x7f.1``, ``0177.0.0.1``)
and IPv6 forms that embed an IPv4 address (mapped, compatible, 6to4).

Error messages name the host as given; resolved addresses never appear.
"""

from __future__ import annotations

import asyncio
import ipaddress
import re
import socket
from typing import Callable, Iterable
from urllib.parse import unquote, urlsplit

from toolgate.exceptions import ERR_SSRF_BLOCKED, DomainError

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address
Resolver = Callable[[str], Iterable[str]]

ALLOWED_SCHEMES = ("http", "https")

BLOCKED_NETWORKS = tuple(
    ipaddress.ip_network(cidr)
    for cidr in (
        # IPv4
        "0.0.0.0/8",
        "10.0.0.0/8",
        "100.64.0.0/10",  # CGNAT, includes 100.100.100.200 metadata
        "127.0.0.0/8",
        "169.254.0.0/16",  # link-local, includes 169.254.169.254 metadata
        "172.16.0.0/12",
        "192.0.0.0/24",
        "192.168.0.0/16",
        "198.18.0.0/15",
        "224.0.0.0/4",
        "240.0.0.0/4",  # reserved + broadcast
        # IPv6
        "::/128",
        "::1/128",
        "64:ff9b::/96",  # NAT64
        "64:ff9b:1::/48",
        "fc00::/7",
        "fe80::/10",
        "ff00::/8",
    )
)

# Dotted forms inet_aton understands: 1-4 parts, each decimal, octal or hex.
_LEGACY_IPV4 = re.compile(r"^(0x[0-9a-f]*|[0-9]+)(\.(0x[0-9a-f]*|[0-9]+)){0,3}$")

_OP = "validate_url"


def _blocked(detail: str) -> DomainError:
    return DomainError(_OP, ERR_SSRF_BLOCKED, detail)


def is_private_ip(ip: IPAddress | str) -> bool:
    """
    Report whether ``ip`` is loopback, private, link-local or otherwise reserved.

    Raises:
        ValueError: If ``ip`` is a string that is not an IP address
    """
    if isinstance(ip, str):
        ip = ipaddress.ip_address(ip)

    if isinstance(ip, ipaddress.IPv6Address):
        if ip.ipv4_mapped is not None:
            return is_private_ip(ip.ipv4_mapped)
        if ip.sixtofour is not None:
            return is_private_ip(ip.sixtofour)
        value = int(ip)
        # IPv4-compatible ::a.b.c.d (:: and ::1 are handled by the table)
        if value >> 32 == 0 and value > 1:
            return is_private_ip(ipaddress.IPv4Address(value))

    return any(ip in network for network in BLOCKED_NETWORKS)


def parse_host_ip(host: str) -> IPAddress | None:
    """Parse ``host`` as an IP literal, accepting legacy IPv4 forms. None if it is a name."""
    try:
        return ipaddress.ip_address(host)
    except ValueError:
        pass
    if _LEGACY_IPV4.match(host):
        try:
            return ipaddress.IPv4Address(socket.inet_aton(host))
        except OSError:
            return None
    return None


def default_resolve(host: str) -> list[str]:
    """Resolve ``host`` to every address the system resolver returns."""
    infos = socket.getaddrinfo(host, None, proto=socket.IPPROTO_TCP)
    return [str(info[4][0]) for info in infos]


def resolve_public(host: str, resolve: Resolver = default_resolve) -> list[IPAddress]:
    """
    Resolve ``host`` and return its addresses, all of them public.

    ``host`` may be a name or an IP literal (legacy IPv4 forms included).

    Raises:
        DomainError: wrapping ERR_SSRF_BLOCKED if any address is private or
            the lookup fails
    """
    literal = parse_host_ip(host)
    if literal is not None:
        if is_private_ip(literal):
            raise _blocked(f"host {host!r} is a private/reserved address")
        return [literal]

    try:
        addresses = list(resolve(host))
    except (OSError, UnicodeError) as exc:
        raise _blocked(f"DNS lookup failed for {host!r}") from exc

    if not addresses:
        raise _blocked(f"no addresses found for {host!r}")

    checked: list[IPAddress] = []
    for address in addresses:
        try:
            ip = ipaddress.ip_address(address)
        except ValueError as exc:
            raise _blocked(f"unparseable address for {host!r}") from exc
        if is_private_ip(ip):
            raise _blocked(f"host {host!r} resolves to a private/reserved address")
        checked.append(ip)
    return checked


def validate_url(url: str, resolve: Resolver = default_resolve) -> None:
    """
    Reject URLs that could reach internal targets.

    Args:
        url: Model-supplied URL
        resolve: Host -> addresses lookup (injectable for tests)

    Raises:
        DomainError: wrapping ERR_SSRF_BLOCKED
    """
    try:
        parts = urlsplit(url)
    except ValueError as exc:
        raise _blocked(f"invalid URL: {exc}") from exc

    scheme = parts.scheme.lower()
    if not scheme:
        raise _blocked("missing URL scheme, only http/https allowed")
    if scheme not in ALLOWED_SCHEMES:
        raise _blocked(f"scheme {scheme!r} not allowed, only http/https")

    host = unquote(parts.hostname or "").strip().rstrip(".").lower()
    if not host:
        raise _blocked("empty hostname")

    resolve_public(host, resolve)


async def validate_url_async(url: str, resolve: Resolver = default_resolve) -> None:
    """``validate_url`` with DNS resolution off the event loop."""
    await asyncio.to_thread(validate_url, url, resolve)


__all__ = [
    "ALLOWED_SCHEMES",
    "BLOCKED_NETWORKS",
    "Resolver",
    "default_resolve",
    "is_private_ip",
    "parse_host_ip",
    "resolve_public",
    "validate_url",
    "validate_url_async",
]
