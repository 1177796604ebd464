"""
Durable store maintenance for tickpy

Key Components:
- Schema: typed views and defaults for the core-owned store slots
- Self-Healer: per-cycle structural validation and repair
- Migration Manager: atomic, versioned schema upgrades
"""

from .schema import CURRENT_SCHEMA_VERSION, BootstrapState, InitState, RespawnState, default_store
from .self_healer import HealthCheckResult, MemorySelfHealer, SelfHealerConfig
from .migration_manager import MemoryMigrationManager, Migration, MigrationPreview, MigrationResult
from .utilization import StoreUtilization, StoreUtilizationMonitor, UtilizationConfig

__all__ = [
    'CURRENT_SCHEMA_VERSION',
    'BootstrapState',
    'InitState',
    'RespawnState',
    'default_store',
    'HealthCheckResult',
    'MemorySelfHealer',
    'SelfHealerConfig',
    'MemoryMigrationManager',
    'Migration',
    'MigrationPreview',
    'MigrationResult',
    'StoreUtilization',
    'StoreUtilizationMonitor',
    'UtilizationConfig'
]
