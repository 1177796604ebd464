"""
tickpy - execution core for a cycle-driven autonomous agent
"""

__version__ = "0.1.0"
