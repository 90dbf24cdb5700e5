"""Command-line interface."""

from diffengine.cli.commands import main

__all__ = ["main"]
