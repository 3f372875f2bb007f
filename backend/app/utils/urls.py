"""
Checks for URLs the server is asked to fetch on a client's behalf.
"""
import asyncio
import ipaddress
import socket
from typing import Awaitable, Callable, List
from urllib.parse import urlsplit

HostResolver = Callable[[str], Awaitable[List[str]]]

ALLOWED_SCHEMES = ("http", "https")


class UnsafeUrl(ValueError):
    """URL is not a public http(s) address."""


async def resolve_host(host: str) -> List[str]:
    """All IP addresses `host` resolves to."""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    return [info[4][0] for info in infos]


def is_public_address(address: str) -> bool:
    ip = ipaddress.ip_address(address)
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped:
        ip = ip.ipv4_mapped
    return ip.is_global and not ip.is_multicast


async def ensure_public_url(url: str, resolver: HostResolver = resolve_host) -> str:
    """
    Reject URLs that would make the server fetch from a private network.

    Args:
        url: URL supplied by a client
        resolver: Host name resolver (injectable for tests)

    Returns:
        The URL, unchanged

    Raises:
        UnsafeUrl: Wrong scheme, no host, unresolvable host, or a host that
            resolves to a loopback, private, link-local or reserved address
    """
    parts = urlsplit(url.strip())
    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise UnsafeUrl(f"Unsupported URL scheme: {parts.scheme or 'none'}")
    host = parts.hostname
    if not host:
        raise UnsafeUrl("URL has no host")

    try:
        addresses = [str(ipaddress.ip_address(host))]
    except ValueError:
        try:
            addresses = await resolver(host)
        except OSError as e:
            raise UnsafeUrl(f"Cannot resolve host {host}: {e}")

    if not addresses:
        raise UnsafeUrl(f"Cannot resolve host {host}")
    for address in addresses:
        if not is_public_address(address):
            raise UnsafeUrl(f"Host {host} resolves to a non-public address")
    return url
