"""
CLI module for ilogic-bridge.
"""

from ilogic_bridge.cli.main import app

def cli():
    """Entry point for the CLI."""
    app()

__all__ = ['app', 'cli']
