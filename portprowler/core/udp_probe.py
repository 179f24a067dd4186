#!/usr/bin/env python3
"""
PortProwler - UDP Probe Module
Copyright (C) 2026  PortProwler contributors
GPLv3 License

Best-effort UDP probing over a connected datagram socket.

Design goals:
- Be bounded (one datagram out, one read limited by the probe deadline).
- Confirm responsive UDP services and detect closed ports when the stack
  surfaces ICMP port unreachable as ECONNREFUSED.
- Never report silence as "filtered": UDP cannot tell a quiet open port from a
  filtered one, so no answer is "open|filtered".
"""

from __future__ import annotations

import logging
import random
import socket
import struct
import threading
import time
from typing import Optional, Tuple

from portprowler.core.models import PortResult
from portprowler.utils.constants import (
    DNS_HEADER_LEN,
    DNS_PORT,
    DNS_PROBE_NAME,
    ERR_CANCELLED,
    ERR_DNS_NOT_VALIDATED,
    ERR_TIMEOUT,
    PROTO_UDP,
    STATE_CLOSED,
    STATE_OPEN,
    STATE_OPEN_FILTERED,
    UDP_GENERIC_PAYLOAD,
    UDP_RECV_BUFSIZE,
)

logger = logging.getLogger(__name__)

# DNS header flags: standard query, recursion desired.
_DNS_FLAGS_QUERY_RD = 0x0100
_DNS_FLAG_QR = 0x8000
_DNS_TYPE_A = 1
_DNS_CLASS_IN = 1


def encode_dns_name(name: str) -> bytes:
    """Encode a dotted hostname as a sequence of DNS labels."""
    name = name.strip().rstrip(".")
    if not name:
        raise ValueError("empty dns name")
    out = b""
    for label in name.split("."):
        if not label:
            raise ValueError(f"invalid dns name: {name!r}")
        if len(label) > 63:
            raise ValueError(f"dns label too long: {label!r}")
        raw = label.encode("ascii")
        out += bytes([len(raw)]) + raw
    return out + b"\x00"


def build_dns_query(name: str = DNS_PROBE_NAME, txid: Optional[int] = None) -> Tuple[bytes, int]:
    """
    Build a minimal DNS query for the A record of ``name``.

    Returns:
        Tuple of (payload bytes, transaction id)
    """
    if txid is None:
        txid = random.getrandbits(16)
    # ID, flags, QDCOUNT=1, ANCOUNT, NSCOUNT, ARCOUNT
    header = struct.pack("!HHHHHH", txid, _DNS_FLAGS_QUERY_RD, 1, 0, 0, 0)
    question = encode_dns_name(name) + struct.pack("!HH", _DNS_TYPE_A, _DNS_CLASS_IN)
    return header + question, txid


def is_valid_dns_response(packet: bytes, txid: int) -> bool:
    """Minimal sanity check: full header, echoed transaction id, QR bit set."""
    if not packet or len(packet) < DNS_HEADER_LEN:
        return False
    got_txid, flags = struct.unpack("!HH", packet[:4])
    if got_txid != txid:
        return False
    return bool(flags & _DNS_FLAG_QR)


def probe_payload_for(port: int) -> Tuple[bytes, Optional[int]]:
    """Pick the probe payload for a port; the txid is only set for DNS."""
    if port == DNS_PORT:
        try:
            return build_dns_query()
        except ValueError:
            logger.debug("DNS query build failed; using generic payload", exc_info=True)
    return UDP_GENERIC_PAYLOAD, None


def _hex_sample(data: bytes, max_bytes: int = 32) -> str:
    if not data:
        return ""
    return data[:max_bytes].hex()


def _is_refused(exc: OSError) -> bool:
    return isinstance(exc, ConnectionRefusedError) or "connection refused" in str(exc).lower()


def udp_scan(
    ip: str,
    port: int,
    timeout: float,
    cancel: Optional[threading.Event] = None,
) -> PortResult:
    """
    Probe a single UDP port and return a classified result.

    States:
      - open: any payload came back (for 53/udp, a failed DNS validation is
        still open but annotated)
      - closed: refusal surfaced on connect, send or receive
      - open|filtered: nothing came back before the deadline
    """

    def _result(state: str, error: Optional[str] = None, rtt_ms: int = 0) -> PortResult:
        return PortResult(
            target="", ip=ip, port=port, protocol=PROTO_UDP, state=state, error=error, rtt_ms=rtt_ms
        )

    if cancel is not None and cancel.is_set():
        return _result(STATE_OPEN_FILTERED, ERR_CANCELLED)

    deadline = time.monotonic() + max(0.0, float(timeout))
    payload, txid = probe_payload_for(port)

    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    except OSError as exc:
        logger.debug("udp socket error %s:%d: %s", ip, port, exc)
        return _result(STATE_OPEN_FILTERED, str(exc))

    with sock:
        try:
            sock.connect((ip, port))
        except OSError as exc:
            if _is_refused(exc):
                logger.debug("udp connect refused %s:%d", ip, port)
                return _result(STATE_CLOSED, str(exc))
            logger.debug("udp connect error %s:%d: %s", ip, port, exc)
            return _result(STATE_OPEN_FILTERED, str(exc))

        start = time.monotonic()
        try:
            sock.send(payload)
        except OSError as exc:
            if _is_refused(exc):
                logger.debug("udp send refused %s:%d", ip, port)
                return _result(STATE_CLOSED, str(exc))
            logger.debug("udp send error %s:%d: %s", ip, port, exc)
            return _result(STATE_OPEN_FILTERED, str(exc))

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return _result(STATE_OPEN_FILTERED, ERR_TIMEOUT)

        try:
            sock.settimeout(remaining)
            data = sock.recv(UDP_RECV_BUFSIZE)
        except socket.timeout:
            logger.debug("udp timeout %s:%d", ip, port)
            return _result(STATE_OPEN_FILTERED, ERR_TIMEOUT)
        except OSError as exc:
            # Some stacks surface ICMP Port Unreachable as ECONNREFUSED on recv() for connected UDP.
            if _is_refused(exc):
                logger.debug("udp conn refused %s:%d", ip, port)
                return _result(STATE_CLOSED, str(exc))
            logger.debug("udp read error %s:%d: %s", ip, port, exc)
            return _result(STATE_OPEN_FILTERED, str(exc))

        rtt = max(0, int((time.monotonic() - start) * 1000))

    if not data:
        return _result(STATE_OPEN_FILTERED)

    if port == DNS_PORT and txid is not None:
        if is_valid_dns_response(data, txid):
            logger.debug("udp dns response %d bytes from %s:%d rtt=%dms", len(data), ip, port, rtt)
            return _result(STATE_OPEN, rtt_ms=rtt)
        # Middleboxes sometimes answer with junk; bytes back still mean something is listening.
        logger.debug(
            "udp got %d bytes from %s:%d but dns validation failed (%s)",
            len(data),
            ip,
            port,
            _hex_sample(data),
        )
        return _result(STATE_OPEN, ERR_DNS_NOT_VALIDATED, rtt)

    logger.debug("udp got %d bytes from %s:%d rtt=%dms", len(data), ip, port, rtt)
    return _result(STATE_OPEN, rtt_ms=rtt)
