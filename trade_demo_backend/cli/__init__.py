"""Command-line interface for the trade demo backend."""

from trade_demo_backend.cli.commands import cli

__all__ = ["cli"]
