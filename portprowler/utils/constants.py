#!/usr/bin/env python3
"""
PortProwler - Constants and Configuration
Copyright (C) 2026  PortProwler contributors
GPLv3 License
"""

# Version
VERSION = "1.2.0"

# Default language
DEFAULT_LANG = "en"

# Protocol kinds
PROTO_TCP = "tcp"
PROTO_UDP = "udp"
PROTO_STEALTH = "stealth"
SCAN_PROTOCOLS = (PROTO_TCP, PROTO_UDP, PROTO_STEALTH)
DEFAULT_PROTOCOLS = (PROTO_TCP,)

# Port states
STATE_OPEN = "open"
STATE_CLOSED = "closed"
STATE_FILTERED = "filtered"
STATE_OPEN_FILTERED = "open|filtered"

# Confidence levels
CONFIDENCE_LOW = "low"
CONFIDENCE_MEDIUM = "medium"
CONFIDENCE_HIGH = "high"

# Diagnostic strings carried in PortResult.error
ERR_TIMEOUT = "timeout"
ERR_CANCELLED = "cancelled"
ERR_DNS_NOT_VALIDATED = "dns response not validated"
ERR_STEALTH_UNSUPPORTED = "stealth scan not supported on this platform"
ERR_ICMP_UNREACHABLE = "icmp unreachable"

# Worker pool
DEFAULT_WORKERS = 100
MIN_WORKERS = 1
MAX_WORKERS = 10000

# Probe timeouts (seconds)
DEFAULT_TIMEOUT = 1.0
SERVICE_DETECT_FALLBACK_TIMEOUT = 1.0

# Port range
MIN_PORT = 1
MAX_PORT = 65535

# UDP probing
DNS_PORT = 53
DNS_PROBE_NAME = "example.com"
DNS_HEADER_LEN = 12
UDP_GENERIC_PAYLOAD = b"\x00"
UDP_RECV_BUFSIZE = 4096

# Service detection
BANNER_READ_BYTES = 2048
HTTP_PROBE_PORTS = (80, 8080, 8000)
SMTP_PROBE_PORTS = (25,)

# Well-known service names (port-table fallback when no banner matches)
WELL_KNOWN_SERVICES = {
    21: "ftp",
    22: "ssh",
    23: "telnet",
    25: "smtp",
    53: "dns",
    67: "dhcp-server",
    69: "tftp",
    80: "http",
    110: "pop3",
    123: "ntp",
    135: "msrpc",
    137: "netbios-ns",
    139: "netbios-ssn",
    143: "imap",
    161: "snmp",
    389: "ldap",
    443: "https",
    445: "microsoft-ds",
    500: "ipsec-ike",
    514: "syslog",
    587: "submission",
    993: "imaps",
    995: "pop3s",
    1433: "mssql",
    1521: "oracle",
    1900: "ssdp",
    3306: "mysql",
    3389: "rdp",
    5353: "mdns",
    5432: "postgresql",
    5900: "vnc",
    6379: "redis",
    8000: "http-alt",
    8080: "http-proxy",
}

# CLI exit codes
EXIT_OK = 0
EXIT_USAGE = 2
EXIT_PRIVILEGE = 3
EXIT_FAILURE = 4
EXIT_INTERRUPTED = 130

# File permissions
SECURE_FILE_MODE = 0o600
OUTPUT_FILE_MODE = 0o644

# Logging
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5
