#!/usr/bin/env python3
"""
PortProwler - Logging Setup
Copyright (C) 2026  PortProwler contributors
GPLv3 License

Rotating file log under ~/.portprowler/logs plus a terse console handler.
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Optional

from portprowler.utils.config import get_config_paths
from portprowler.utils.constants import LOG_BACKUP_COUNT, LOG_MAX_BYTES

LOGGER_NAME = "portprowler"


class _NoTracebackFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        exc_info = record.exc_info
        stack_info = record.stack_info
        record.exc_info = None
        record.stack_info = None
        try:
            return super().format(record)
        finally:
            record.exc_info = exc_info
            record.stack_info = stack_info


def get_log_dir() -> str:
    config_dir, _ = get_config_paths()
    return os.path.join(config_dir, "logs")


def setup_logging(verbose: bool = False, log_dir: Optional[str] = None) -> logging.Logger:
    """Configure the package logger with rotation. Safe to call more than once."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    file_handler = None
    try:
        log_dir = log_dir or get_log_dir()
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, f"portprowler_{datetime.now().strftime('%Y%m%d')}.log")
        fmt = logging.Formatter(
            "%(asctime)s - [%(levelname)s] - %(funcName)s:%(lineno)d - %(message)s"
        )
        file_handler = RotatingFileHandler(
            log_file, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT
        )
        file_handler.setFormatter(fmt)
        file_handler.setLevel(logging.DEBUG)
    except OSError:
        file_handler = None

    console_level = logging.DEBUG if verbose else logging.ERROR
    stream_handlers = [
        h
        for h in logger.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]
    if stream_handlers:
        for h in stream_handlers:
            h.setLevel(console_level)
    else:
        ch = logging.StreamHandler(stream=sys.stderr)
        ch.setLevel(console_level)
        ch.setFormatter(_NoTracebackFormatter("[%(levelname)s] %(message)s"))
        logger.addHandler(ch)

    has_file = any(isinstance(h, RotatingFileHandler) for h in logger.handlers)
    if file_handler and not has_file:
        logger.addHandler(file_handler)
    elif file_handler:
        file_handler.close()

    if file_handler is None and not has_file:
        logger.warning("File logging disabled (permission or path issue)")
    logger.info("=" * 60)
    logger.info("PortProwler session start")
    logger.info("User: %s", os.getenv("SUDO_USER", os.getenv("USER", "unknown")))
    logger.info("PID: %s", os.getpid())
    return logger
