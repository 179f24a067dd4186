#!/usr/bin/env python3
"""
PortProwler - Raw Socket Privilege Gate
Copyright (C) 2026  PortProwler contributors
GPLv3 License

Answers whether this process may send hand-crafted TCP segments. The check is
local only: it opens no socket and changes no state, so it is safe to call
before the worker pool exists.
"""

import os
import sys
from typing import Optional, Tuple

from portprowler.core import syn_scanner


def can_open_raw_socket() -> Tuple[bool, Optional[str]]:
    """
    Check if stealth (SYN) scanning is available.

    Requires:
    1. A platform with raw-socket support (not Windows)
    2. Root privileges (euid == 0)
    3. Scapy importable

    Returns:
        Tuple of (available: bool, reason: Optional[str])
    """
    if sys.platform.startswith("win") or not hasattr(os, "geteuid"):
        return False, f"raw sockets not supported on {sys.platform} in this build"

    if os.geteuid() != 0:
        return False, "requires_root"

    if not syn_scanner.SCAPY_AVAILABLE:
        return False, "scapy_not_installed"

    return True, None
