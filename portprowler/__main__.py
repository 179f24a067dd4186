#!/usr/bin/env python3
"""
PortProwler - Entry point for `python -m portprowler`
Copyright (C) 2026  PortProwler contributors
GPLv3 License
"""

from portprowler.cli import main

if __name__ == "__main__":
    main()
