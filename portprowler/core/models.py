"""
PortProwler - Core Data Models
Copyright (C) 2026  PortProwler contributors
GPLv3 License

Jobs and results exchanged between the scheduler, the probes and the caller.
Both are frozen: a job is owned by the single worker that dequeues it, and a
result never changes after it has been published on the result stream.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional, Tuple

from portprowler.utils.constants import STATE_OPEN


@dataclass(frozen=True)
class PortJob:
    """One port's worth of work, with the ordered protocols to run on it."""

    target: str
    ip: str
    port: int
    protocols: Tuple[str, ...]


@dataclass(frozen=True)
class PortResult:
    """Outcome of a single probe for one (port, protocol) pair."""

    target: str
    ip: str
    port: int
    protocol: str
    state: str
    service: str = ""
    banner: str = ""
    os_guess: str = ""
    confidence: str = ""
    error: Optional[str] = None
    rtt_ms: int = 0

    @property
    def is_open(self) -> bool:
        return self.state == STATE_OPEN

    def with_target(self, target: str) -> "PortResult":
        """Return a copy labelled with the original target string."""
        return replace(self, target=target)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON output."""
        return asdict(self)
