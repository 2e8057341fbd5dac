"""URL validation guarding frontend fetches against SSRF."""

from __future__ import annotations

import ipaddress
import logging
import re
import socket
from typing import Callable, Iterable, List, Optional
from urllib.parse import urlsplit

from cmsindex.errors import AcquisitionError, UnsafeUrlError

LOGGER = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")
METADATA_ADDRESSES = frozenset({"169.254.169.254", "fd00:ec2::254", "100.100.100.200"})
_IPV4_SHORTHAND = re.compile(r"[0-9a-fx.]+")

Resolver = Callable[[str, Optional[int]], List[str]]
IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


def system_resolver(host: str, port: Optional[int]) -> List[str]:
    """Resolve ``host`` to the list of addresses the system would connect to."""
    infos = socket.getaddrinfo(host, port or 80, proto=socket.IPPROTO_TCP)
    return [str(info[4][0]) for info in infos]


def _unwrap(address: IPAddress) -> IPAddress:
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address


def _is_internal_literal(address: IPAddress) -> bool:
    address = _unwrap(address)
    return (
        address.is_loopback
        or address.is_link_local
        or address.is_private
        or address.is_reserved
        or address.is_unspecified
        or address.is_multicast
    )


def _is_internal_resolved(address: IPAddress) -> bool:
    address = _unwrap(address)
    return (
        str(address) in METADATA_ADDRESSES
        or address.is_loopback
        or address.is_link_local
        or address.is_unspecified
        or address.is_multicast
    )


class UrlSafetyPolicy:
    """Decide whether a URL may be fetched.

    Rejects non-HTTP(S) schemes, blocked host names, literal addresses in
    loopback/link-local/private/reserved ranges, and, when resolution is
    enabled, host names resolving to loopback, link-local or metadata
    addresses. Ports are not restricted.
    """

    def __init__(
        self,
        *,
        blocked_hosts: Iterable[str] = ("localhost",),
        resolve_hostnames: bool = True,
        resolver: Resolver | None = None,
    ) -> None:
        self.blocked_hosts = frozenset(host.strip().lower().rstrip(".") for host in blocked_hosts)
        self.resolve_hostnames = resolve_hostnames
        self._resolver = resolver or system_resolver

    def check(self, url: str) -> None:
        """Validate ``url``.

        Raises:
            UnsafeUrlError: If the URL targets a disallowed scheme or address.
            AcquisitionError: If the host name cannot be resolved.
        """
        try:
            parts = urlsplit(url)
            port = parts.port
        except ValueError as exc:
            raise UnsafeUrlError(f"Malformed URL: {url}") from exc

        scheme = (parts.scheme or "").lower()
        if scheme not in ALLOWED_SCHEMES:
            raise UnsafeUrlError(f"Scheme '{scheme or '(none)'}' is not allowed")

        host = (parts.hostname or "").lower().rstrip(".")
        if not host:
            raise UnsafeUrlError("URL has no host")
        if host in self.blocked_hosts or host.endswith(".localhost"):
            raise UnsafeUrlError(f"Host '{host}' is blocked")

        literal = self._parse_literal(host)
        if literal is not None:
            if _is_internal_literal(literal):
                raise UnsafeUrlError(f"Address {literal} is internal")
            return

        if not self.resolve_hostnames:
            return

        try:
            addresses = self._resolver(host, port)
        except (OSError, UnicodeError) as exc:
            raise AcquisitionError(f"Unable to resolve {host}: {exc}", code="dns_error") from exc
        for raw in addresses:
            try:
                resolved = ipaddress.ip_address(raw.split("%", 1)[0])
            except ValueError:
                continue
            if _is_internal_resolved(resolved):
                raise UnsafeUrlError(f"Host '{host}' resolves to internal address {resolved}")

    def is_safe(self, url: str) -> bool:
        """Return True when :meth:`check` accepts ``url``."""
        try:
            self.check(url)
        except AcquisitionError as exc:
            LOGGER.debug("URL %s rejected: %s", url, exc)
            return False
        return True

    @staticmethod
    def _parse_literal(host: str) -> Optional[IPAddress]:
        try:
            return ipaddress.ip_address(host)
        except ValueError:
            pass
        # Short, decimal and hex IPv4 forms (127.1, 2130706433, 0x7f000001).
        if not _IPV4_SHORTHAND.fullmatch(host):
            return None
        try:
            return ipaddress.IPv4Address(socket.inet_aton(host))
        except OSError:
            return None


__all__ = ["UrlSafetyPolicy", "system_resolver", "ALLOWED_SCHEMES", "METADATA_ADDRESSES"]
