"""
CLI module for tickpy

Key Components:
- main: entry point for the ``tickpy`` console script
"""

from .main_cli import main as cli_main

__all__ = [
    'cli_main'
]
