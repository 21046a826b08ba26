"""Main CLI module for alarmfilter.

This module re-exports the CLI for convenience. The main implementation
is in __main__.py.
"""

from alarmfilter.__main__ import cli

__all__ = ["cli"]
