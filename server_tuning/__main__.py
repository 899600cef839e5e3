"""
Entry point for running server_tuning as a module.

Usage:
    python -m server_tuning list-profiles
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
