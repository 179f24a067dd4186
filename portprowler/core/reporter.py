#!/usr/bin/env python3
"""
PortProwler - Reporter Module
Copyright (C) 2026  PortProwler contributors
GPLv3 License

Turns collected results into the summary header and the results table, and
writes output files atomically. Nothing in here talks to the network.
"""

from __future__ import annotations

import io
import logging
import os
import tempfile
from typing import Iterable, List, Optional, Sequence, Tuple

from rich import box
from rich.cells import cell_len
from rich.console import Console
from rich.table import Table
from rich.text import Text

from portprowler.core.models import PortResult
from portprowler.utils.constants import OUTPUT_FILE_MODE, PROTO_STEALTH, PROTO_TCP, PROTO_UDP
from portprowler.utils.i18n import get_text

logger = logging.getLogger(__name__)

TABLE_COLUMNS = ("TARGET", "IP", "PORT/PROTO", "STATE", "SERVICE", "INFO")
_MIN_TABLE_WIDTH = 80
# Padding on both sides of a cell plus the column divider.
_CELL_OVERHEAD = 3


def sort_results(results: Iterable[PortResult]) -> List[PortResult]:
    """Sort by protocol, then port, with ip and service as tie-breakers."""
    return sorted(results, key=lambda r: (r.protocol, r.port, r.ip, r.service))


def _info_for(result: PortResult) -> str:
    if result.error:
        return result.error
    return f"rtt={result.rtt_ms}ms"


def _rows_for(results: Iterable[PortResult]) -> List[Tuple[str, ...]]:
    return [
        (r.target or r.ip, r.ip, f"{r.port}/{r.protocol}", r.state, r.service, _info_for(r))
        for r in sort_results(results)
    ]


def _table_width(rows: Sequence[Tuple[str, ...]]) -> int:
    """Console width that fits the widest cell of every column."""
    widths = [cell_len(name) for name in TABLE_COLUMNS]
    for row in rows:
        widths = [max(width, cell_len(cell)) for width, cell in zip(widths, row)]
    return max(_MIN_TABLE_WIDTH, sum(widths) + _CELL_OVERHEAD * len(widths))


def _table_from_rows(rows: Sequence[Tuple[str, ...]]) -> Table:
    table = Table(box=box.SIMPLE_HEAD, show_edge=False, pad_edge=False, header_style=None)
    for name in TABLE_COLUMNS:
        table.add_column(name, no_wrap=True)
    for row in rows:
        # Plain Text: error strings may contain square brackets.
        table.add_row(*(Text(cell) for cell in row))
    return table


def render_table(results: Iterable[PortResult]) -> str:
    """Render the results table as plain text (no colour codes, no truncation)."""
    rows = _rows_for(results)
    buf = io.StringIO()
    console = Console(
        file=buf,
        width=_table_width(rows),
        color_system=None,
        force_terminal=False,
        highlight=False,
        emoji=False,
    )
    console.print(_table_from_rows(rows))
    lines = [line.rstrip() for line in buf.getvalue().splitlines()]
    return "\n".join(lines).strip("\n") + "\n"


def render_header(
    *,
    target: str,
    ip: str,
    ports_spec: str,
    protocols: Sequence[str],
    service_detect: bool,
    os_detect: bool,
    os_guess: str = "",
    os_confidence: str = "",
    workers: int,
    timeout: float,
    verbose: bool = False,
    output_file: Optional[str] = None,
    lang: str = "en",
) -> str:
    """Summary lines printed above the table."""
    if not os_detect:
        os_line = get_text("os_disabled", lang)
    elif os_guess:
        os_line = get_text("os_line", lang, os_guess, os_confidence)
    else:
        os_line = get_text("os_unknown", lang)

    lines = [
        get_text("target_line", lang, target, ip),
        os_line,
        get_text("ports_line", lang, ports_spec),
        get_text(
            "modes_line",
            lang,
            str(PROTO_TCP in protocols).lower(),
            str(PROTO_UDP in protocols).lower(),
            str(PROTO_STEALTH in protocols).lower(),
        ),
        get_text("detect_line", lang, str(service_detect).lower(), str(os_detect).lower()),
        get_text("workers_line", lang, workers, f"{timeout:g}", str(verbose).lower()),
    ]
    if output_file:
        lines.append(get_text("file_line", lang, output_file))
    return "\n".join(lines) + "\n"


def write_atomic(path: str, data: bytes) -> None:
    """
    Write ``data`` to ``path`` atomically.

    A temp file is created in the destination directory, written, fsynced and
    renamed over the target. The temp file is removed on any failure.

    Raises:
        OSError: directory creation, write or rename failed
    """
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(prefix="portprowler-", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_path, OUTPUT_FILE_MODE)
        os.replace(tmp_path, path)
    except OSError:
        logger.debug("Atomic write to %s failed", path, exc_info=True)
        try:
            os.remove(tmp_path)
        except OSError:
            pass
        raise
    logger.info("Wrote %d bytes to %s", len(data), path)
