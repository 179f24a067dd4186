#!/usr/bin/env python3
"""
PortProwler - Privilege Gate Tests
"""

import unittest
from unittest.mock import patch

import portprowler.core.syn_scanner as syn_mod
from portprowler.core.errors import PrivilegeError, ScanError
from portprowler.core.privilege import can_open_raw_socket


class TestCanOpenRawSocket(unittest.TestCase):
    def test_not_available_without_root(self):
        with (
            patch("portprowler.core.privilege.sys.platform", "linux"),
            patch("os.geteuid", return_value=1000, create=True),
        ):
            allowed, reason = can_open_raw_socket()
        self.assertFalse(allowed)
        self.assertEqual(reason, "requires_root")

    def test_not_available_without_scapy(self):
        with (
            patch("portprowler.core.privilege.sys.platform", "linux"),
            patch("os.geteuid", return_value=0, create=True),
            patch.object(syn_mod, "SCAPY_AVAILABLE", False),
        ):
            allowed, reason = can_open_raw_socket()
        self.assertFalse(allowed)
        self.assertEqual(reason, "scapy_not_installed")

    def test_available_with_root_and_scapy(self):
        with (
            patch("portprowler.core.privilege.sys.platform", "linux"),
            patch("os.geteuid", return_value=0, create=True),
            patch.object(syn_mod, "SCAPY_AVAILABLE", True),
        ):
            allowed, reason = can_open_raw_socket()
        self.assertTrue(allowed)
        self.assertIsNone(reason)

    def test_windows_is_unsupported(self):
        with patch("portprowler.core.privilege.sys.platform", "win32"):
            allowed, reason = can_open_raw_socket()
        self.assertFalse(allowed)
        self.assertIn("win32", reason)

    def test_repeated_calls_agree(self):
        self.assertEqual(can_open_raw_socket(), can_open_raw_socket())


class TestPrivilegeError(unittest.TestCase):
    def test_reason_defaults_to_requires_root(self):
        exc = PrivilegeError()
        self.assertEqual(exc.reason, "requires_root")
        self.assertIn("requires_root", str(exc))
        self.assertIsInstance(exc, ScanError)

    def test_reason_is_kept(self):
        self.assertEqual(PrivilegeError("scapy_not_installed").reason, "scapy_not_installed")


if __name__ == "__main__":
    unittest.main()
