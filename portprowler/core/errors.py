#!/usr/bin/env python3
"""
PortProwler - Scan Errors
Copyright (C) 2026  PortProwler contributors
GPLv3 License

Only configuration and privilege failures abort a run. Everything that goes
wrong inside a probe is recorded in the corresponding PortResult instead.
"""

from typing import Optional


class ScanError(Exception):
    """Base class for failures that prevent a scan from starting."""

    pass


class ConfigurationError(ScanError):
    """Raised when the scan configuration is invalid (no workers are started)."""

    pass


class PrivilegeError(ScanError):
    """Raised when stealth scanning is requested without raw-socket privileges."""

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason or "requires_root"
        super().__init__(f"stealth scan requires raw socket privileges ({self.reason})")
