#!/usr/bin/env python3
"""
PortProwler - Stealth (SYN) Scanner Module
Copyright (C) 2026  PortProwler contributors
GPLv3 License

Half-open TCP probing using scapy. Requires root; the scan manager consults the
privilege gate before any stealth job is scheduled.
"""

import logging
import random
import threading
import time
from typing import Optional

from portprowler.core.models import PortResult
from portprowler.utils.constants import (
    ERR_CANCELLED,
    ERR_ICMP_UNREACHABLE,
    ERR_STEALTH_UNSUPPORTED,
    ERR_TIMEOUT,
    PROTO_STEALTH,
    STATE_CLOSED,
    STATE_FILTERED,
    STATE_OPEN,
)

logger = logging.getLogger(__name__)

# Scapy is optional at import time - only required when using stealth mode
SCAPY_AVAILABLE = False
try:
    from scapy.all import ICMP, IP, TCP, send, sr1, conf as scapy_conf

    # Disable scapy verbosity and runtime warnings
    scapy_conf.verb = 0
    logging.getLogger("scapy.runtime").setLevel(logging.ERROR)
    SCAPY_AVAILABLE = True
except ImportError:
    pass

# TCP flag bits
_FLAG_SYN = 0x02
_FLAG_RST = 0x04
_FLAG_ACK = 0x10
_SYN_ACK = _FLAG_SYN | _FLAG_ACK

# ICMP destination-unreachable codes that mean "something dropped it"
_ICMP_DEST_UNREACH = 3
_ICMP_FILTER_CODES = {1, 2, 3, 9, 10, 13}


def _ephemeral_port() -> int:
    return random.randint(1024, 65535)


def stealth_scan(
    ip: str,
    port: int,
    timeout: float,
    cancel: Optional[threading.Event] = None,
) -> PortResult:
    """
    Send a single SYN and classify the first reply.

    Returns a PortResult with state:
      - open: SYN-ACK received (a RST is sent back to drop the half-open connection)
      - closed: RST received
      - filtered: no reply, ICMP unreachable, or an unexpected reply
    """

    def _result(state: str, error: Optional[str] = None, rtt_ms: int = 0) -> PortResult:
        return PortResult(
            target="",
            ip=ip,
            port=port,
            protocol=PROTO_STEALTH,
            state=state,
            error=error,
            rtt_ms=rtt_ms,
        )

    if not SCAPY_AVAILABLE:
        return _result(STATE_FILTERED, ERR_STEALTH_UNSUPPORTED)

    if cancel is not None and cancel.is_set():
        return _result(STATE_FILTERED, ERR_CANCELLED)

    sport = _ephemeral_port()
    start = time.monotonic()
    try:
        pkt = IP(dst=ip) / TCP(sport=sport, dport=port, flags="S", seq=random.getrandbits(32))
        resp = sr1(pkt, timeout=timeout, verbose=0)
    except OSError as exc:
        # PermissionError included: privileges can be dropped after the gate ran.
        logger.debug("stealth send error %s:%d: %s", ip, port, exc)
        return _result(STATE_FILTERED, str(exc) or exc.__class__.__name__)

    rtt = max(0, int((time.monotonic() - start) * 1000))

    if resp is None:
        logger.debug("stealth timeout %s:%d", ip, port)
        return _result(STATE_FILTERED, ERR_TIMEOUT)

    if resp.haslayer(TCP):
        tcp_layer = resp.getlayer(TCP)
        flags = int(tcp_layer.flags)
        if flags & _SYN_ACK == _SYN_ACK:
            try:
                rst = IP(dst=ip) / TCP(sport=sport, dport=port, flags="R", seq=int(tcp_layer.ack))
                send(rst, verbose=0)
            except OSError as exc:
                logger.debug("stealth rst send failed %s:%d: %s", ip, port, exc)
            logger.debug("stealth syn-ack %s:%d rtt=%dms", ip, port, rtt)
            return _result(STATE_OPEN, rtt_ms=rtt)
        if flags & _FLAG_RST:
            logger.debug("stealth rst %s:%d", ip, port)
            return _result(STATE_CLOSED, rtt_ms=rtt)
        return _result(STATE_FILTERED, f"unexpected tcp flags 0x{flags:02x}", rtt)

    if resp.haslayer(ICMP):
        icmp_layer = resp.getlayer(ICMP)
        if int(icmp_layer.type) == _ICMP_DEST_UNREACH and int(icmp_layer.code) in _ICMP_FILTER_CODES:
            logger.debug("stealth icmp unreachable %s:%d", ip, port)
            return _result(STATE_FILTERED, ERR_ICMP_UNREACHABLE, rtt)

    return _result(STATE_FILTERED, "unexpected reply", rtt)
