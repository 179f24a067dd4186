#!/usr/bin/env python3
"""
PortProwler - Reporter Tests
Header lines, results table and atomic file output.
"""

import os
import stat
import unittest
from unittest.mock import patch

import pytest

from portprowler.core.reporter import (
    TABLE_COLUMNS,
    render_header,
    render_table,
    sort_results,
    write_atomic,
)


def _header(**overrides):
    base = dict(
        target="scanme.example",
        ip="192.0.2.7",
        ports_spec="22,80",
        protocols=("tcp",),
        service_detect=False,
        os_detect=False,
        workers=100,
        timeout=1.0,
    )
    base.update(overrides)
    return render_header(**base)


# -------------------------------------------------------------------------
# Header
# -------------------------------------------------------------------------


def test_header_lines():
    lines = _header().splitlines()
    assert lines[0] == "Target: scanme.example -> 192.0.2.7"
    assert lines[1] == "OS: disabled"
    assert lines[2] == "Ports: 22,80"
    assert lines[3] == "Scan modes: tcp=true udp=false stealth=false"
    assert lines[4] == "Service detection: false, OS detection: false"
    assert lines[5] == "Workers: 100, timeout: 1s, verbose: false"
    assert len(lines) == 6


def test_header_os_guess_and_file():
    text = _header(
        os_detect=True, os_guess="Linux", os_confidence="medium", output_file="/tmp/out.txt"
    )
    assert "OS: Linux (confidence: medium)" in text
    assert text.splitlines()[-1] == "File output: /tmp/out.txt"


def test_header_os_unknown():
    assert "OS: unknown" in _header(os_detect=True)


def test_header_modes_reflect_protocols():
    text = _header(protocols=("stealth", "udp"))
    assert "Scan modes: tcp=false udp=true stealth=true" in text


def test_header_spanish():
    assert _header(lang="es").startswith("Objetivo: scanme.example -> 192.0.2.7")


# -------------------------------------------------------------------------
# Table
# -------------------------------------------------------------------------


def test_sort_by_protocol_then_port(make_result):
    results = [
        make_result(port=443, protocol="udp"),
        make_result(port=80, protocol="tcp"),
        make_result(port=22, protocol="udp"),
        make_result(port=22, protocol="tcp"),
    ]
    ordered = [(r.protocol, r.port) for r in sort_results(results)]
    assert ordered == [("tcp", 22), ("tcp", 80), ("udp", 22), ("udp", 443)]


def test_table_has_header_and_rows(make_result):
    table = render_table(
        [
            make_result(port=80, service="http", rtt_ms=3),
            make_result(port=81, state="filtered", error="timeout"),
        ]
    )
    lines = table.splitlines()
    for column in TABLE_COLUMNS:
        assert column in lines[0]
    body = "\n".join(lines[1:])
    assert "80/tcp" in body
    assert "rtt=3ms" in body
    assert "81/tcp" in body
    assert "filtered" in body
    assert "timeout" in body
    assert table.endswith("\n")
    assert "\x1b[" not in table


def test_table_rows_sorted(make_result):
    table = render_table([make_result(port=443), make_result(port=22)])
    assert table.index("22/tcp") < table.index("443/tcp")


def test_table_falls_back_to_ip_for_target(make_result):
    table = render_table([make_result(target="", ip="192.0.2.9")])
    row = [line for line in table.splitlines() if "80/tcp" in line][0]
    assert row.split()[0] == "192.0.2.9"


def test_long_cells_are_not_truncated(make_result):
    target = "a" * 118 + ".example.com"
    error = "[Errno 113] No route to host while probing the remote endpoint"
    table = render_table(
        [
            make_result(
                target=target,
                ip="192.0.2.55",
                port=161,
                protocol="udp",
                state="open|filtered",
                error=error,
            )
        ]
    )
    row = [line for line in table.splitlines() if "161/udp" in line][0]
    assert target in row
    assert "192.0.2.55" in row
    assert "open|filtered" in row
    assert error in row
    assert "…" not in table


def test_bracketed_error_rendered_verbatim(make_result):
    error = "bad reply [bold]x[/bold] [/oops]"
    table = render_table([make_result(state="filtered", error=error)])
    assert error in table


def test_empty_table_still_has_header():
    table = render_table([])
    assert "PORT/PROTO" in table


# -------------------------------------------------------------------------
# Atomic write
# -------------------------------------------------------------------------


class TestWriteAtomic(unittest.TestCase):
    def setUp(self):
        import tempfile

        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.dir = self._tmp.name

    def test_writes_and_overwrites(self):
        path = os.path.join(self.dir, "out.txt")
        write_atomic(path, b"first\n")
        write_atomic(path, b"second\n")
        with open(path, "rb") as handle:
            self.assertEqual(handle.read(), b"second\n")
        self.assertEqual(stat.S_IMODE(os.stat(path).st_mode), 0o644)
        self.assertEqual(os.listdir(self.dir), ["out.txt"])

    def test_creates_parent_directory(self):
        path = os.path.join(self.dir, "nested", "deeper", "out.txt")
        write_atomic(path, b"x")
        self.assertTrue(os.path.isfile(path))

    def test_failed_rename_leaves_no_temp_file(self):
        path = os.path.join(self.dir, "out.txt")
        with patch("portprowler.core.reporter.os.replace", side_effect=OSError("disk full")):
            with self.assertRaises(OSError):
                write_atomic(path, b"data")
        self.assertEqual(os.listdir(self.dir), [])


def test_unwritable_destination_raises(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    with pytest.raises(OSError):
        write_atomic(str(blocker / "out.txt"), b"x")
