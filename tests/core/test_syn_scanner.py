#!/usr/bin/env python3
"""
Tests for the stealth (SYN) scanner module.

Scapy is never driven for real: packet classes and sr1/send are replaced with
mocks so replies can be shaped per test.
"""

import importlib
import sys
import threading
import types
import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import portprowler.core.syn_scanner as syn_mod
from portprowler.core.syn_scanner import stealth_scan
from portprowler.utils.constants import (
    ERR_CANCELLED,
    ERR_ICMP_UNREACHABLE,
    ERR_STEALTH_UNSUPPORTED,
    ERR_TIMEOUT,
)

FAKE_TCP = MagicMock(name="TCP")
FAKE_ICMP = MagicMock(name="ICMP")


def _reply(tcp=None, icmp=None):
    """Build a fake scapy reply carrying the given layers."""
    layers = {}
    if tcp is not None:
        layers[FAKE_TCP] = tcp
    if icmp is not None:
        layers[FAKE_ICMP] = icmp
    resp = MagicMock()
    resp.haslayer.side_effect = lambda layer: layer in layers
    resp.getlayer.side_effect = lambda layer: layers.get(layer)
    return resp


class _ScapyPatched(unittest.TestCase):
    """Base class: scapy symbols replaced on the module under test."""

    def setUp(self):
        self.sr1 = MagicMock(return_value=None)
        self.send = MagicMock()
        patcher = patch.multiple(
            syn_mod,
            IP=MagicMock(name="IP"),
            TCP=FAKE_TCP,
            ICMP=FAKE_ICMP,
            sr1=self.sr1,
            send=self.send,
            SCAPY_AVAILABLE=True,
            create=True,
        )
        patcher.start()
        self.addCleanup(patcher.stop)


class TestStealthClassification(_ScapyPatched):
    def test_syn_ack_is_open_and_resets(self):
        self.sr1.return_value = _reply(tcp=SimpleNamespace(flags=0x12, ack=1001))
        res = stealth_scan("192.0.2.5", 22, timeout=0.5)
        self.assertEqual(res.state, "open")
        self.assertEqual(res.protocol, "stealth")
        self.assertIsNone(res.error)
        self.send.assert_called_once()
        FAKE_TCP.assert_any_call(sport=unittest.mock.ANY, dport=22, flags="R", seq=1001)

    def test_rst_is_closed(self):
        self.sr1.return_value = _reply(tcp=SimpleNamespace(flags=0x14, ack=0))
        res = stealth_scan("192.0.2.5", 23, timeout=0.5)
        self.assertEqual(res.state, "closed")
        self.send.assert_not_called()

    def test_no_reply_is_filtered_timeout(self):
        self.sr1.return_value = None
        res = stealth_scan("192.0.2.5", 24, timeout=0.5)
        self.assertEqual(res.state, "filtered")
        self.assertEqual(res.error, ERR_TIMEOUT)

    def test_icmp_unreachable_is_filtered(self):
        for code in (1, 2, 3, 9, 10, 13):
            self.sr1.return_value = _reply(icmp=SimpleNamespace(type=3, code=code))
            res = stealth_scan("192.0.2.5", 25, timeout=0.5)
            self.assertEqual(res.state, "filtered")
            self.assertEqual(res.error, ERR_ICMP_UNREACHABLE)

    def test_other_icmp_is_filtered_unexpected(self):
        self.sr1.return_value = _reply(icmp=SimpleNamespace(type=11, code=0))
        res = stealth_scan("192.0.2.5", 26, timeout=0.5)
        self.assertEqual(res.state, "filtered")
        self.assertEqual(res.error, "unexpected reply")

    def test_unexpected_tcp_flags_are_filtered(self):
        self.sr1.return_value = _reply(tcp=SimpleNamespace(flags=0x10, ack=0))
        res = stealth_scan("192.0.2.5", 27, timeout=0.5)
        self.assertEqual(res.state, "filtered")
        self.assertEqual(res.error, "unexpected tcp flags 0x10")

    def test_send_error_is_filtered(self):
        self.sr1.side_effect = PermissionError(1, "Operation not permitted")
        res = stealth_scan("192.0.2.5", 28, timeout=0.5)
        self.assertEqual(res.state, "filtered")
        self.assertIn("Operation not permitted", res.error)

    def test_rst_send_failure_still_open(self):
        self.sr1.return_value = _reply(tcp=SimpleNamespace(flags=0x12, ack=7))
        self.send.side_effect = OSError("no buffer space")
        res = stealth_scan("192.0.2.5", 29, timeout=0.5)
        self.assertEqual(res.state, "open")

    def test_timeout_forwarded_to_sr1(self):
        stealth_scan("192.0.2.5", 30, timeout=0.25)
        _, kwargs = self.sr1.call_args
        self.assertEqual(kwargs["timeout"], 0.25)

    def test_cancelled_sends_nothing(self):
        cancel = threading.Event()
        cancel.set()
        res = stealth_scan("192.0.2.5", 31, timeout=0.5, cancel=cancel)
        self.sr1.assert_not_called()
        self.assertEqual(res.error, ERR_CANCELLED)


class TestStealthUnavailable(unittest.TestCase):
    def test_without_scapy_reports_unsupported(self):
        with patch.object(syn_mod, "SCAPY_AVAILABLE", False):
            res = stealth_scan("192.0.2.5", 22, timeout=0.5)
        self.assertEqual(res.state, "filtered")
        self.assertEqual(res.error, ERR_STEALTH_UNSUPPORTED)

    def test_import_sets_scapy_flags(self):
        """Reloading with a fake scapy.all sets the flag and silences scapy."""
        original_module = sys.modules["portprowler.core.syn_scanner"]
        saved = {name: sys.modules.get(name) for name in ("scapy", "scapy.all")}
        fake_scapy = types.ModuleType("scapy")
        fake_scapy_all = types.ModuleType("scapy.all")
        fake_conf = types.SimpleNamespace(verb=1)
        fake_scapy_all.conf = fake_conf
        for name in ("ICMP", "IP", "TCP", "send", "sr1"):
            setattr(fake_scapy_all, name, MagicMock())
        sys.modules["scapy"] = fake_scapy
        sys.modules["scapy.all"] = fake_scapy_all
        try:
            reloaded = importlib.reload(original_module)
            self.assertTrue(reloaded.SCAPY_AVAILABLE)
            self.assertEqual(fake_conf.verb, 0)
        finally:
            for name, module in saved.items():
                if module is None:
                    sys.modules.pop(name, None)
                else:
                    sys.modules[name] = module
            importlib.reload(original_module)


if __name__ == "__main__":
    unittest.main()
