#!/usr/bin/env python3
"""
PortProwler - Signature Store

Provides data-driven banner signatures for service detection.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from portprowler.utils.constants import (
    CONFIDENCE_HIGH,
    CONFIDENCE_LOW,
    CONFIDENCE_MEDIUM,
    WELL_KNOWN_SERVICES,
)

# Order matters: the first matching substring wins.
DEFAULT_SERVICE_SIGNATURES: List[Dict[str, str]] = [
    {"substr": "ssh-", "service": "ssh", "confidence": CONFIDENCE_HIGH},
    {"substr": "http/", "service": "http", "confidence": CONFIDENCE_MEDIUM},
    {"substr": "nginx", "service": "http/nginx", "confidence": CONFIDENCE_HIGH},
    {"substr": "220 ", "service": "smtp", "confidence": CONFIDENCE_MEDIUM},
    {"substr": "dns", "service": "dns", "confidence": CONFIDENCE_MEDIUM},
]

_VALID_CONFIDENCE = {CONFIDENCE_LOW, CONFIDENCE_MEDIUM, CONFIDENCE_HIGH}


def _data_path(filename: str) -> Path:
    base = Path(__file__).resolve().parents[1]
    return base / "data" / filename


def _load_json(filename: str) -> Any:
    path = _data_path(filename)
    try:
        with open(path, "r", encoding="utf-8") as handle:
            return json.load(handle)
    except (OSError, ValueError):
        return None


def _sanitize_signatures(data: Any) -> List[Dict[str, str]]:
    if not isinstance(data, list):
        return []
    cleaned: List[Dict[str, str]] = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        substr = entry.get("substr")
        service = entry.get("service")
        confidence = entry.get("confidence")
        if not isinstance(substr, str) or not substr:
            continue
        if not isinstance(service, str) or not service.strip():
            continue
        if confidence not in _VALID_CONFIDENCE:
            confidence = CONFIDENCE_LOW
        cleaned.append(
            {"substr": substr.lower(), "service": service.strip(), "confidence": confidence}
        )
    return cleaned


@lru_cache(maxsize=1)
def get_service_signatures() -> Tuple[Dict[str, str], ...]:
    data = _sanitize_signatures(_load_json("service_signatures.json"))
    if not data:
        data = _sanitize_signatures(DEFAULT_SERVICE_SIGNATURES)
    return tuple(data)


def match_banner(banner: str) -> Optional[Tuple[str, str]]:
    """
    Match banner text against the signature table (case-insensitive).

    Returns:
        (service, confidence) for the first matching signature, or None.
    """
    if not banner:
        return None
    lowered = banner.lower()
    for sig in get_service_signatures():
        if sig["substr"] in lowered:
            return sig["service"], sig["confidence"]
    return None


def lookup_port(port: int) -> Optional[str]:
    """Well-known service name for a port, if any."""
    return WELL_KNOWN_SERVICES.get(int(port))
