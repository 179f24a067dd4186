#!/usr/bin/env python3
"""
PortProwler - CLI Module
Copyright (C) 2026  PortProwler contributors
GPLv3 License

Command-line interface and argument parsing.
"""

import argparse
import logging
import re
import sys
from typing import List, Optional, Sequence

from portprowler.core.errors import ConfigurationError, PrivilegeError
from portprowler.core.models import PortResult
from portprowler.core.os_detect import detect_os
from portprowler.core.reporter import render_header, render_table, write_atomic
from portprowler.core.scan_manager import ResultStream, ScanConfig, ScanManager, resolve_protocols
from portprowler.utils.constants import (
    DEFAULT_TIMEOUT,
    DEFAULT_WORKERS,
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_OK,
    EXIT_PRIVILEGE,
    EXIT_USAGE,
    MAX_WORKERS,
    MIN_WORKERS,
    VERSION,
)
from portprowler.utils.config import get_persistent_defaults, update_persistent_defaults
from portprowler.utils.i18n import TRANSLATIONS, detect_preferred_language, get_text
from portprowler.utils.log import setup_logging
from portprowler.utils.ports import parse_port_spec
from portprowler.utils.targets import TargetResolutionError, resolve_target_ipv4

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m)?\s*$")
_DURATION_SCALE = {"ms": 0.001, "s": 1.0, "m": 60.0, None: 1.0}


def parse_duration(value: str) -> float:
    """Parse "1", "1.5", "500ms", "2s" or "1m" into seconds."""
    match = _DURATION_RE.match(str(value))
    if not match:
        raise argparse.ArgumentTypeError(f"invalid duration: {value!r}")
    return float(match.group(1)) * _DURATION_SCALE[match.group(2)]


def parse_arguments(argv: Optional[Sequence[str]] = None):
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="portprowler",
        description=f"PortProwler v{VERSION} - Single-host port scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # TCP connect scan of common ports
  portprowler scanme.example -p 22,80,443

  # TCP + UDP with service and OS detection
  portprowler 192.168.1.10 -p 1-1024 --tcp --udp --service-detect --os-detect

  # Stealth (SYN) scan, needs root
  sudo portprowler 192.168.1.10 -p 22,80 -s
""",
    )

    # Load persisted defaults (best-effort).
    persisted_defaults = {}
    try:
        persisted_defaults = get_persistent_defaults()
    except (OSError, ValueError):
        persisted_defaults = {}

    default_workers = persisted_defaults.get("workers")
    if not isinstance(default_workers, int) or not (MIN_WORKERS <= default_workers <= MAX_WORKERS):
        default_workers = DEFAULT_WORKERS

    default_timeout = persisted_defaults.get("timeout")
    if not isinstance(default_timeout, (int, float)) or default_timeout <= 0:
        default_timeout = DEFAULT_TIMEOUT

    default_lang = persisted_defaults.get("lang")
    if default_lang not in TRANSLATIONS:
        default_lang = None

    parser.add_argument("target", nargs="?", help="Target hostname or IPv4 address")
    parser.add_argument(
        "--ports",
        "-p",
        type=str,
        default="",
        metavar="PORTS",
        help="Ports to scan (e.g. 22,80,8000-8100) (required)",
    )
    parser.add_argument("--tcp", action="store_true", help="Perform TCP connect scan")
    parser.add_argument("--udp", action="store_true", help="Perform UDP scan")
    parser.add_argument(
        "--stealth",
        "-s",
        action="store_true",
        help="Perform stealth (SYN) scan (requires raw socket privileges)",
    )
    parser.add_argument(
        "--file",
        "-f",
        type=str,
        default=None,
        metavar="PATH",
        help="Write the results table to a file (overwrite, atomic)",
    )
    parser.add_argument(
        "--service-detect", action="store_true", help="Enable service detection (opt-in)"
    )
    parser.add_argument("--os-detect", action="store_true", help="Enable OS detection (opt-in)")
    parser.add_argument(
        "--workers",
        "-c",
        type=int,
        default=default_workers,
        metavar="N",
        help=f"Worker count (default: {default_workers})",
    )
    parser.add_argument(
        "--timeout",
        "-t",
        type=parse_duration,
        default=default_timeout,
        metavar="DURATION",
        help=f"Per-probe timeout, e.g. 1s or 500ms (default: {default_timeout:g}s)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    parser.add_argument(
        "--lang",
        choices=sorted(TRANSLATIONS.keys()),
        default=default_lang,
        help="Interface language",
    )
    parser.add_argument(
        "--save-defaults",
        action="store_true",
        help="Persist the current --workers/--timeout/--lang as defaults",
    )
    parser.add_argument("--version", action="version", version=f"PortProwler v{VERSION}")

    return parser.parse_args(argv)


def _collect(stream: ResultStream, lang: str, results: List[PortResult]) -> None:
    """Drain the stream into ``results``, with a progress bar on a terminal."""
    if not sys.stdout.isatty():
        for result in stream:
            results.append(result)
        return

    from rich.console import Console
    from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=Console(file=sys.stderr),
        transient=True,
    ) as progress:
        task_id = progress.add_task(get_text("progress", lang, ""), total=stream.expected)
        for result in stream:
            results.append(result)
            progress.update(
                task_id,
                advance=1,
                description=get_text("progress", lang, f"{result.port}/{result.protocol}"),
            )


def _err(message: str) -> None:
    print(message, file=sys.stderr)


def run(args, logger: logging.Logger) -> int:
    lang = detect_preferred_language(args.lang)

    if not args.target:
        _err(get_text("target_required", lang))
        return EXIT_USAGE
    if not args.ports:
        _err(get_text("ports_required", lang))
        return EXIT_USAGE
    if not (MIN_WORKERS <= args.workers <= MAX_WORKERS):
        _err(get_text("invalid_workers", lang, MAX_WORKERS))
        return EXIT_USAGE
    if args.timeout <= 0:
        _err(get_text("invalid_timeout", lang))
        return EXIT_USAGE

    try:
        ports = parse_port_spec(args.ports)
    except ValueError as exc:
        _err(get_text("invalid_ports", lang, args.ports, exc))
        return EXIT_USAGE

    if args.save_defaults:
        saved = update_persistent_defaults(
            workers=args.workers, timeout=args.timeout, lang=args.lang
        )
        _err(get_text("defaults_saved" if saved else "defaults_not_saved", lang))

    try:
        ip = resolve_target_ipv4(args.target)
    except TargetResolutionError as exc:
        _err(get_text("resolve_failed", lang, exc))
        return EXIT_FAILURE

    protocols = resolve_protocols(tcp=args.tcp, udp=args.udp, stealth=args.stealth)
    config = ScanConfig(
        target=args.target,
        ip=ip,
        ports=ports,
        protocols=protocols,
        workers=args.workers,
        timeout=args.timeout,
        service_detect=args.service_detect,
        os_detect=args.os_detect,
    )

    try:
        stream = ScanManager(config, logger=logger.getChild("scan")).run()
    except PrivilegeError as exc:
        _err(get_text("need_privileges", lang, exc.reason))
        return EXIT_PRIVILEGE
    except ConfigurationError as exc:
        _err(get_text("manager_failed", lang, exc))
        return EXIT_FAILURE

    interrupted = False
    results: List[PortResult] = []
    try:
        _collect(stream, lang, results)
    except KeyboardInterrupt:
        interrupted = True
        stream.cancel()
        # Workers stop at the next checkpoint; keep whatever was already published.
        results.extend(stream)
        logger.warning("Scan interrupted by user")

    os_guess, os_confidence = ("", "")
    if config.os_detect:
        os_guess, os_confidence = detect_os(r for r in results if r.is_open)

    header = render_header(
        target=args.target,
        ip=ip,
        ports_spec=args.ports,
        protocols=protocols,
        service_detect=args.service_detect,
        os_detect=args.os_detect,
        os_guess=os_guess,
        os_confidence=os_confidence,
        workers=args.workers,
        timeout=args.timeout,
        verbose=args.verbose,
        output_file=args.file,
        lang=lang,
    )
    table = render_table(results)

    if interrupted:
        _err(get_text("interrupted", lang))
    sys.stdout.write(header)
    sys.stdout.write(table)
    sys.stdout.flush()

    if args.file:
        try:
            write_atomic(args.file, table.encode("utf-8"))
        except OSError as exc:
            _err(get_text("write_failed", lang, exc))
            return EXIT_FAILURE

    return EXIT_INTERRUPTED if interrupted else EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point for PortProwler CLI."""
    args = parse_arguments(argv)
    logger = setup_logging(verbose=args.verbose)
    sys.exit(run(args, logger))


if __name__ == "__main__":
    main()
