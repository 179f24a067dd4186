from __future__ import annotations

from typing import List, Set

from portprowler.utils.constants import MAX_PORT, MIN_PORT


def _parse_port(token: str) -> int:
    try:
        value = int(token.strip())
    except ValueError:
        raise ValueError(f"invalid port number: {token.strip()!r}") from None
    if not (MIN_PORT <= value <= MAX_PORT):
        raise ValueError(f"port numbers must be in {MIN_PORT}..{MAX_PORT}")
    return value


def parse_port_spec(spec: str) -> List[int]:
    """
    Parse a port specification into a sorted, deduplicated list.

    Supported forms: "22", "22,80,443", "1-1024", "22,80,8000-8100".
    Raises ValueError on empty tokens, non-numeric values, out-of-range ports
    and reversed ranges.
    """
    spec = (spec or "").strip()
    if not spec:
        raise ValueError("empty port spec")

    seen: Set[int] = set()
    for token in spec.split(","):
        token = token.strip()
        if not token:
            raise ValueError("invalid empty token in port spec")
        if "-" in token:
            start_str, end_str = token.split("-", 1)
            start, end = _parse_port(start_str), _parse_port(end_str)
            if start > end:
                raise ValueError(f"range start greater than end: {token}")
            seen.update(range(start, end + 1))
        else:
            seen.add(_parse_port(token))
    return sorted(seen)
