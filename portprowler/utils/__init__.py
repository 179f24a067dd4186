#!/usr/bin/env python3
"""PortProwler utilities subpackage."""

from portprowler.utils.constants import DEFAULT_LANG, VERSION
from portprowler.utils.i18n import TRANSLATIONS, get_text

__all__ = [
    "VERSION",
    "DEFAULT_LANG",
    "TRANSLATIONS",
    "get_text",
]
