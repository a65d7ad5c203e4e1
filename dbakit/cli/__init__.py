"""
CLI module for dbakit.

Provides the ``dbakit`` console script and one argparse entry point per
command.
"""

from .commands import main

__all__ = ["main"]
