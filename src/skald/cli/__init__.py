"""
Command-line interface for Skald.
"""

from skald.cli.main import cli

__all__ = ["cli"]
