#!/usr/bin/env python3
"""
PortProwler - TCP Connect Probe
Copyright (C) 2026  PortProwler contributors
GPLv3 License

Full three-way handshake bounded by the probe deadline. The connection is torn
down as soon as it is established; banner capture belongs to service detection.
"""

import errno
import logging
import socket
import threading
import time
from typing import Optional

from portprowler.core.models import PortResult
from portprowler.utils.constants import (
    ERR_CANCELLED,
    ERR_TIMEOUT,
    PROTO_TCP,
    STATE_CLOSED,
    STATE_FILTERED,
    STATE_OPEN,
)

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> int:
    return max(0, int((time.monotonic() - start) * 1000))


def _is_refused(exc: OSError) -> bool:
    # Some stacks wrap ECONNREFUSED in a plain OSError instead of ConnectionRefusedError.
    if isinstance(exc, ConnectionRefusedError):
        return True
    if exc.errno == errno.ECONNREFUSED:
        return True
    return "connection refused" in str(exc).lower()


def tcp_scan(
    ip: str,
    port: int,
    timeout: float,
    cancel: Optional[threading.Event] = None,
) -> PortResult:
    """
    Connect-scan a single TCP port.

    Returns a PortResult with state:
      - open: handshake completed
      - closed: connection actively refused
      - filtered: deadline exceeded ("timeout") or any other transport error
    """
    if cancel is not None and cancel.is_set():
        return PortResult(
            target="", ip=ip, port=port, protocol=PROTO_TCP, state=STATE_FILTERED, error=ERR_CANCELLED
        )

    start = time.monotonic()
    try:
        with socket.create_connection((ip, port), timeout=timeout):
            rtt = _elapsed_ms(start)
        logger.debug("tcp connect success %s:%d rtt=%dms", ip, port, rtt)
        return PortResult(
            target="", ip=ip, port=port, protocol=PROTO_TCP, state=STATE_OPEN, rtt_ms=rtt
        )
    except socket.timeout:
        logger.debug("tcp timeout %s:%d", ip, port)
        return PortResult(
            target="",
            ip=ip,
            port=port,
            protocol=PROTO_TCP,
            state=STATE_FILTERED,
            error=ERR_TIMEOUT,
            rtt_ms=_elapsed_ms(start),
        )
    except OSError as exc:
        rtt = _elapsed_ms(start)
        if _is_refused(exc):
            logger.debug("tcp conn refused %s:%d", ip, port)
            return PortResult(
                target="", ip=ip, port=port, protocol=PROTO_TCP, state=STATE_CLOSED, rtt_ms=rtt
            )
        logger.debug("tcp error %s:%d: %s", ip, port, exc)
        return PortResult(
            target="",
            ip=ip,
            port=port,
            protocol=PROTO_TCP,
            state=STATE_FILTERED,
            error=str(exc) or exc.__class__.__name__,
            rtt_ms=rtt,
        )
