#!/usr/bin/env python3
"""
PortProwler - Single-host Port Scanner
Copyright (C) 2026  PortProwler contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

PortProwler package initialization.
"""

from portprowler.core.scan_manager import ScanConfig, ScanManager
from portprowler.utils.constants import VERSION

__all__ = ["ScanConfig", "ScanManager", "VERSION", "__version__"]
__version__ = VERSION
