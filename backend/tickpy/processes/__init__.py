"""
Built-in processes registered by tickpy.runtime.build_kernel
"""

from .initialization import InitializationProcess
from .memory import MemoryProcess
from .bootstrap import BootstrapProcess

__all__ = [
    'InitializationProcess',
    'MemoryProcess',
    'BootstrapProcess'
]
