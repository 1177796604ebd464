"""
Phase scheduler for tickpy

Key Components:
- Kernel: per-cycle heal, migrate, budget check and process dispatch
- ProcessRegistry: priority-ordered process registrations
"""

from .kernel import CycleReport, CycleStatus, Kernel
from .registry import ProcessDescriptor, ProcessRegistry

__all__ = [
    'CycleReport',
    'CycleStatus',
    'Kernel',
    'ProcessDescriptor',
    'ProcessRegistry'
]
