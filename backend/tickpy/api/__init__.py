"""
API module for tickpy

Key Components:
- create_app: FastAPI application factory
- Store endpoints: heal, migration preview/status, simulated cycles
"""

from .app import create_app

__all__ = [
    'create_app'
]
