#!/usr/bin/env python3
"""
Play connect-N matches between two strategies.

Usage:
    python scripts/play.py --player1 qlearn --player2 random --games 10000 --progress
    python scripts/play.py --player1 console --player2 search --depth 4 --games 1
"""

import sys

from connectn.cli import main

if __name__ == "__main__":
    sys.exit(main())
