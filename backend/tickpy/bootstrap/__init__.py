"""
Startup work for tickpy: phased initialization and first-room bootstrap tracking
"""

from .initializer import InitializationConfig, InitializationManager, InitPhase, InitTickResult
from .bootstrap_phase import BootstrapConfig, BootstrapPhaseManager, BootstrapStatus

__all__ = [
    'InitializationConfig',
    'InitializationManager',
    'InitPhase',
    'InitTickResult',
    'BootstrapConfig',
    'BootstrapPhaseManager',
    'BootstrapStatus'
]
