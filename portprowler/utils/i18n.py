#!/usr/bin/env python3
"""
PortProwler - Internationalization (i18n)
Copyright (C) 2026  PortProwler contributors
GPLv3 License

Translation strings for English and Spanish.
"""

import locale
import os
import re
from typing import Optional

from portprowler.utils.constants import DEFAULT_LANG

TRANSLATIONS = {
    "en": {
        "target_required": "error: target positional argument required",
        "ports_required": (
            "error: -p <ports> is required "
            "(examples: -p 22 -p 22,80 -p 1-1024 -p 22,80,8000-8100)"
        ),
        "invalid_workers": "error: invalid worker count (-c). Provide a positive value up to {}.",
        "invalid_timeout": "error: invalid timeout (-t). Provide a positive number of seconds.",
        "invalid_ports": (
            "Invalid port spec {!r}: {}\n"
            "Examples: -p 22  -p 22,80  -p 1-1024  -p 22,80,8000-8100"
        ),
        "resolve_failed": "failed to resolve target: {}",
        "need_privileges": (
            "Stealth scan (-s) requires raw socket privileges ({}). Rerun with elevated "
            "privileges (root/CAP_NET_RAW) or remove -s to use TCP connect. "
            "No fallback is performed."
        ),
        "manager_failed": "failed to start scanner manager: {}",
        "write_failed": "failed to write output file: {}",
        "interrupted": "Interrupted: scan cancelled, partial results below.",
        "defaults_saved": "Defaults saved.",
        "defaults_not_saved": "Could not save defaults.",
        "progress": "Scanning {}",
        "target_line": "Target: {} -> {}",
        "os_line": "OS: {} (confidence: {})",
        "os_unknown": "OS: unknown",
        "os_disabled": "OS: disabled",
        "ports_line": "Ports: {}",
        "modes_line": "Scan modes: tcp={} udp={} stealth={}",
        "detect_line": "Service detection: {}, OS detection: {}",
        "workers_line": "Workers: {}, timeout: {}s, verbose: {}",
        "file_line": "File output: {}",
    },
    "es": {
        "target_required": "error: se requiere el argumento posicional del objetivo",
        "ports_required": (
            "error: -p <puertos> es obligatorio "
            "(ejemplos: -p 22 -p 22,80 -p 1-1024 -p 22,80,8000-8100)"
        ),
        "invalid_workers": "error: número de workers inválido (-c). Indique un valor positivo hasta {}.",
        "invalid_timeout": "error: timeout inválido (-t). Indique un número positivo de segundos.",
        "invalid_ports": (
            "Especificación de puertos inválida {!r}: {}\n"
            "Ejemplos: -p 22  -p 22,80  -p 1-1024  -p 22,80,8000-8100"
        ),
        "resolve_failed": "no se pudo resolver el objetivo: {}",
        "need_privileges": (
            "El escaneo sigiloso (-s) requiere privilegios de raw socket ({}). Vuelva a "
            "ejecutar con privilegios elevados (root/CAP_NET_RAW) o quite -s para usar TCP "
            "connect. No se realiza ninguna alternativa."
        ),
        "manager_failed": "no se pudo iniciar el gestor de escaneo: {}",
        "write_failed": "no se pudo escribir el fichero de salida: {}",
        "interrupted": "Interrumpido: escaneo cancelado, resultados parciales a continuación.",
        "defaults_saved": "Valores por defecto guardados.",
        "defaults_not_saved": "No se pudieron guardar los valores por defecto.",
        "progress": "Escaneando {}",
        "target_line": "Objetivo: {} -> {}",
        "os_line": "SO: {} (confianza: {})",
        "os_unknown": "SO: desconocido",
        "os_disabled": "SO: desactivado",
        "ports_line": "Puertos: {}",
        "modes_line": "Modos de escaneo: tcp={} udp={} stealth={}",
        "detect_line": "Detección de servicios: {}, detección de SO: {}",
        "workers_line": "Workers: {}, timeout: {}s, verbose: {}",
        "file_line": "Fichero de salida: {}",
    },
}

# Checked in order; the first variable naming a supported language wins.
LANG_ENV_VARS = ("PORTPROWLER_LANG", "LC_ALL", "LC_MESSAGES", "LANG")

# Leading language code of a locale name: es_ES.UTF-8, en_US, es-ES, C.UTF-8
_LOCALE_LANG_RE = re.compile(r"^\s*([A-Za-z]+)(?:[_\-.@]|\s*$)")


def get_text(key: str, lang: str = "en", *args) -> str:
    """Translated message for ``key``; English, then the key itself, as fallbacks."""
    template = TRANSLATIONS.get(lang, {}).get(key) or TRANSLATIONS["en"].get(key, key)
    if not args:
        return template
    return template.format(*args)


def language_from_locale(name: Optional[str]) -> Optional[str]:
    """Supported language code for a locale name, or None."""
    match = _LOCALE_LANG_RE.match(name or "")
    if not match:
        return None
    code = match.group(1).lower()
    return code if code in TRANSLATIONS else None


def detect_preferred_language(preferred: Optional[str] = None) -> str:
    """
    Pick the interface language (en/es).

    An explicit supported preference wins, then LANG_ENV_VARS, then the
    system locale, then DEFAULT_LANG.
    """
    if preferred in TRANSLATIONS:
        return preferred

    candidates = [os.environ.get(var) for var in LANG_ENV_VARS]
    try:
        candidates.append(locale.getlocale()[0])
    except ValueError:
        pass

    for name in candidates:
        lang = language_from_locale(name)
        if lang:
            return lang
    return DEFAULT_LANG
