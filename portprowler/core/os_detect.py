#!/usr/bin/env python3
"""
PortProwler - OS Heuristics
Copyright (C) 2026  PortProwler contributors
GPLv3 License

Best-effort OS guessing from banners, service names and open-port patterns.
Everything here is a pure function of the results passed in: no I/O and no
shared tally. Multi-result guesses are a fold over per-result score tables.
"""

from __future__ import annotations

from functools import reduce
from typing import Dict, Iterable, Tuple

from portprowler.core.models import PortResult
from portprowler.utils.constants import CONFIDENCE_HIGH, CONFIDENCE_LOW, CONFIDENCE_MEDIUM

OS_WINDOWS = "windows"
OS_LINUX = "linux"
OS_EMBEDDED = "embedded"

# Iteration order doubles as the tie-break order.
OS_FAMILIES = (OS_WINDOWS, OS_LINUX, OS_EMBEDDED)

OS_DISPLAY_NAMES = {
    OS_WINDOWS: "Windows",
    OS_LINUX: "Linux",
    OS_EMBEDDED: "embedded",
}

# (family, substrings, points)
BANNER_HINTS = (
    (OS_WINDOWS, ("windows", "microsoft", "mssql"), 3),
    (OS_WINDOWS, ("iis", "winhttp"), 2),
    (OS_LINUX, ("linux", "ubuntu", "debian", "centos", "red hat"), 3),
    (OS_LINUX, ("ssh", "sshd"), 2),
    (OS_LINUX, ("nginx", "apache", "http/"), 2),
    (OS_LINUX, ("mysql", "mariadb", "postgres", "postgresql"), 2),
    (OS_EMBEDDED, ("cisco", "ios", "ubnt", "router", "firmware"), 3),
)

# port -> (family, points)
PORT_HINTS = {
    3389: (OS_WINDOWS, 4),
    135: (OS_WINDOWS, 3),
    139: (OS_WINDOWS, 3),
    445: (OS_WINDOWS, 3),
    22: (OS_LINUX, 1),
    80: (OS_LINUX, 1),
    443: (OS_LINUX, 1),
    3306: (OS_LINUX, 1),
    5432: (OS_LINUX, 1),
    1900: (OS_EMBEDDED, 1),
    5000: (OS_EMBEDDED, 1),
}

_RDP_PORT = 3389


def _empty_scores() -> Dict[str, int]:
    return {family: 0 for family in OS_FAMILIES}


def score_result(result: PortResult) -> Dict[str, int]:
    """Score a single result for each OS family."""
    scores = _empty_scores()
    text = f"{result.banner} {result.service}".strip().lower()

    for family, needles, points in BANNER_HINTS:
        if any(n in text for n in needles):
            scores[family] += points
    # RDP counts for either the service text or the port itself.
    if "rdp" in text or result.port == _RDP_PORT:
        scores[OS_WINDOWS] += 4

    port_hint = PORT_HINTS.get(result.port)
    if port_hint:
        family, points = port_hint
        scores[family] += points
    return scores


def _merge(acc: Dict[str, int], scores: Dict[str, int]) -> Dict[str, int]:
    return {family: acc[family] + scores.get(family, 0) for family in OS_FAMILIES}


def _confidence_for(score: int) -> str:
    if score >= 6:
        return CONFIDENCE_HIGH
    if score >= 3:
        return CONFIDENCE_MEDIUM
    return CONFIDENCE_LOW


def detect_os(results: Iterable[PortResult]) -> Tuple[str, str]:
    """
    Reduce a sequence of results to a single (os_guess, confidence) pair.

    Returns ("", "") when nothing points anywhere.
    """
    totals = reduce(_merge, (score_result(r) for r in results), _empty_scores())

    best, best_score = "", 0
    for family in OS_FAMILIES:
        if totals[family] > best_score:
            best, best_score = family, totals[family]
    if not best:
        return "", ""
    return OS_DISPLAY_NAMES[best], _confidence_for(best_score)


def detect_os_for_result(result: PortResult) -> Tuple[str, str]:
    """Per-result OS heuristics, used by workers right after service detection."""
    return detect_os([result])
