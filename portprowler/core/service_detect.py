#!/usr/bin/env python3
"""
PortProwler - Service Detection
Copyright (C) 2026  PortProwler contributors
GPLv3 License

Enriches open results with a service name, banner and confidence. Only those
three fields are ever touched: protocol, port and state stay as the probe
classified them.
"""

from __future__ import annotations

import logging
import socket
from dataclasses import replace
from typing import Optional

from portprowler.core.models import PortResult
from portprowler.core.signature_store import lookup_port, match_banner
from portprowler.utils.constants import (
    BANNER_READ_BYTES,
    CONFIDENCE_LOW,
    HTTP_PROBE_PORTS,
    PROTO_STEALTH,
    PROTO_TCP,
    SERVICE_DETECT_FALLBACK_TIMEOUT,
    SMTP_PROBE_PORTS,
)

logger = logging.getLogger(__name__)


def _probe_bytes_for(port: int) -> bytes:
    if port in HTTP_PROBE_PORTS:
        return b"HEAD / HTTP/1.0\r\n\r\n"
    if port in SMTP_PROBE_PORTS:
        return b"HELO portprowler\r\n"
    # Generic: send nothing, read whatever greeting the server offers.
    return b""


def grab_banner(ip: str, port: int, timeout: float) -> Optional[str]:
    """
    Open a TCP connection, send a port-specific probe and read the reply.

    Returns the stripped banner text, or None when nothing could be read.
    """
    if timeout is None or timeout <= 0:
        timeout = SERVICE_DETECT_FALLBACK_TIMEOUT
    try:
        with socket.create_connection((ip, port), timeout=timeout) as conn:
            conn.settimeout(timeout)
            probe = _probe_bytes_for(port)
            if probe:
                conn.sendall(probe)
            data = conn.recv(BANNER_READ_BYTES)
    except OSError as exc:
        logger.debug("service-detect: banner grab failed %s:%d: %s", ip, port, exc)
        return None
    text = data.decode("utf-8", errors="replace").strip() if data else ""
    return text or None


def detect_service(result: PortResult, timeout: float) -> PortResult:
    """
    Return ``result`` enriched with service name, banner and confidence.

    Non-open results are returned unchanged. TCP-family results without a
    banner get one short banner grab within ``timeout``; UDP results rely on
    the well-known port table only.
    """
    if not result.is_open:
        return result

    banner = (result.banner or "").strip()
    if not banner and result.protocol in (PROTO_TCP, PROTO_STEALTH):
        banner = grab_banner(result.ip, result.port, timeout) or ""

    service = result.service
    confidence = result.confidence
    matched = match_banner(banner) if banner else None
    if matched:
        service, confidence = matched
    elif not service:
        known = lookup_port(result.port)
        if known:
            service, confidence = known, CONFIDENCE_LOW

    return replace(result, service=service, banner=banner, confidence=confidence)
