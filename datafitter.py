#!/usr/bin/env python3
"""
Datafitter: symbolic regression by random search

Main entry point for the datafitter application. This file serves as a thin
wrapper that delegates all functionality to the datafitter_pkg package.

Usage:
    python datafitter.py data/fit_Dm_4.dat                 # Search until Ctrl+C
    python datafitter.py data.dat --max-duration 60        # Search for a minute
    python datafitter.py data.dat --template two_gaussians --fit-once
    python datafitter.py --help                            # Show help
"""

from __future__ import annotations

import sys


def main() -> int:
    """
    Main entry point for datafitter.

    Returns:
        Exit code from the CLI
    """
    from datafitter_pkg.cli import main_entry

    return main_entry()


if __name__ == "__main__":
    sys.exit(main())
