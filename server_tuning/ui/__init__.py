"""
UI module - Rich console output.
"""

from .console import ConsoleUI

__all__ = ["ConsoleUI"]
