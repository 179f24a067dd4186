from __future__ import annotations

import ipaddress
import socket
from typing import Optional


class TargetResolutionError(ValueError):
    """Raised when a target cannot be turned into a single IPv4 address."""

    pass


def resolve_target_ipv4(target: str) -> str:
    """
    Resolve a hostname or IP literal to the first IPv4 address.

    IPv6 literals and IPv6-only hostnames are rejected.
    """
    raw = (target or "").strip()
    if not raw:
        raise TargetResolutionError("empty target")

    try:
        literal = ipaddress.ip_address(raw)
    except ValueError:
        literal = None
    if literal is not None:
        if literal.version == 4:
            return str(literal)
        raise TargetResolutionError("IPv6 addresses are not supported")

    try:
        infos = socket.getaddrinfo(raw, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as exc:
        raise TargetResolutionError(f"lookup {raw}: {exc}") from exc

    first_v6: Optional[str] = None
    for family, _, _, _, sockaddr in infos:
        if family == socket.AF_INET:
            return str(sockaddr[0])
        if family == socket.AF_INET6 and first_v6 is None:
            first_v6 = str(sockaddr[0])
    if first_v6 is not None:
        raise TargetResolutionError(
            "hostname resolves only to IPv6 addresses; IPv6 is not supported"
        )
    raise TargetResolutionError("no A records found for host")
