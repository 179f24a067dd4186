#!/usr/bin/env python3
"""
PortProwler - Configuration Management Module
Copyright (C) 2026  PortProwler contributors
GPLv3 License

Persistent defaults for common CLI settings (~/.portprowler/config.json).
"""

import copy
import json
import logging
import os

try:
    import pwd  # Unix-only
except ImportError:  # pragma: no cover
    pwd = None
from typing import Any, Dict, Optional

from portprowler.utils.constants import SECURE_FILE_MODE

# Config version
CONFIG_VERSION = "1.0"

# Environment variable names
ENV_CONFIG_DIR = "PORTPROWLER_CONFIG_DIR"

# Default config structure
DEFAULT_CONFIG: Dict[str, Any] = {
    "version": CONFIG_VERSION,
    "defaults": {
        "workers": None,  # int | None
        "timeout": None,  # float seconds | None
        "lang": None,  # "en" | "es" | None
    },
}

logger = logging.getLogger(__name__)


def _resolve_config_owner() -> Optional[tuple]:
    """
    Resolve the intended config owner (uid, gid).

    Stealth scans usually run under sudo; configuration then belongs to the
    invoking user, not root.
    """
    try:
        if hasattr(os, "geteuid") and os.geteuid() == 0:
            sudo_user = os.environ.get("SUDO_USER")
            if sudo_user and pwd is not None:
                pw = pwd.getpwnam(sudo_user)
                return pw.pw_uid, pw.pw_gid
    except (KeyError, OSError):
        logger.debug("Failed to resolve config owner", exc_info=True)
    return None


def get_home_dir() -> str:
    """Home of the invoking user (honours SUDO_USER when running as root)."""
    if hasattr(os, "geteuid") and os.geteuid() == 0:
        sudo_user = os.environ.get("SUDO_USER")
        if sudo_user:
            return os.path.expanduser(f"~{sudo_user}")
    return os.path.expanduser("~")


def get_config_paths() -> tuple:
    """
    Get the config directory and file path.

    - PORTPROWLER_CONFIG_DIR wins when set
    - Normal execution: ~/.portprowler/config.json
    - sudo execution: ~SUDO_USER/.portprowler/config.json
    """
    override = os.environ.get(ENV_CONFIG_DIR)
    if override and override.strip():
        config_dir = os.path.expanduser(override.strip())
    else:
        config_dir = os.path.join(get_home_dir(), ".portprowler")
    config_file = os.path.join(config_dir, "config.json")
    return config_dir, config_file


def _maybe_chown(path: str) -> None:
    owner = _resolve_config_owner()
    if not owner:
        return
    uid, gid = owner
    try:
        os.chown(path, uid, gid)
    except OSError:
        logger.debug("Failed to chown config path: %s", path, exc_info=True)


def ensure_config_dir() -> str:
    """
    Create config directory if it doesn't exist.

    Returns:
        Path to config directory
    """
    config_dir, _ = get_config_paths()
    if not os.path.isdir(config_dir):
        os.makedirs(config_dir, mode=0o700, exist_ok=True)
    try:
        os.chmod(config_dir, 0o700)
    except OSError:
        logger.debug("Failed to chmod config dir: %s", config_dir, exc_info=True)
    _maybe_chown(config_dir)
    return config_dir


def load_config() -> Dict[str, Any]:
    """
    Load configuration from file.

    Returns:
        Configuration dictionary (defaults if file doesn't exist or is unreadable)
    """
    _, config_file = get_config_paths()
    if not os.path.isfile(config_file):
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = json.load(f)
    except (json.JSONDecodeError, IOError):
        logger.debug("Failed to load config file; using defaults", exc_info=True)
        return copy.deepcopy(DEFAULT_CONFIG)

    merged = copy.deepcopy(DEFAULT_CONFIG)
    if isinstance(config, dict):
        merged.update(config)
    return merged


def save_config(config: Dict[str, Any]) -> bool:
    """
    Save configuration to file with secure permissions.

    Returns:
        True if save succeeded
    """
    try:
        ensure_config_dir()
    except OSError:
        logger.debug("Failed to create config dir", exc_info=True)
        return False
    config_dir, config_file = get_config_paths()

    config["version"] = CONFIG_VERSION

    try:
        # Write to temp file first then rename (atomic)
        temp_file = config_file + ".tmp"
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)

        # Owner read/write only
        os.chmod(temp_file, SECURE_FILE_MODE)

        os.replace(temp_file, config_file)
        _maybe_chown(config_dir)
        _maybe_chown(config_file)
        return True

    except (IOError, OSError):
        logger.debug("Failed to save config file", exc_info=True)
        return False


def get_persistent_defaults() -> Dict[str, Any]:
    """
    Get persisted defaults from config file.

    Returns:
        Dict with default keys; values may be None if not configured.
    """
    config = load_config()
    raw = config.get("defaults")
    defaults = DEFAULT_CONFIG.get("defaults", {}).copy()
    if isinstance(raw, dict):
        defaults.update(raw)
    return defaults


def update_persistent_defaults(**kwargs: Any) -> bool:
    """
    Update persisted defaults in config file.

    Any keys not present in DEFAULT_CONFIG["defaults"] are ignored.

    Returns:
        True if save succeeded
    """
    config = load_config()
    existing = config.get("defaults")
    defaults = existing if isinstance(existing, dict) else {}

    allowed = set(DEFAULT_CONFIG.get("defaults", {}).keys())
    for key, value in kwargs.items():
        if key in allowed:
            defaults[key] = value

    config["defaults"] = defaults
    return save_config(config)
