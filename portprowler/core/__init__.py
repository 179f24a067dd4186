#!/usr/bin/env python3
"""PortProwler core subpackage."""

from portprowler.core.errors import ConfigurationError, PrivilegeError, ScanError
from portprowler.core.models import PortJob, PortResult
from portprowler.core.scan_manager import ResultStream, ScanConfig, ScanManager

__all__ = [
    "ConfigurationError",
    "PortJob",
    "PortResult",
    "PrivilegeError",
    "ResultStream",
    "ScanConfig",
    "ScanError",
    "ScanManager",
]
