"""
Kernel settings for tickpy.

Settings come from, in increasing precedence: field defaults, a ``.env`` file,
``TICKPY_*`` environment variables, and explicit keyword overrides.
"""

import logging
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from .memory.schema import CURRENT_SCHEMA_VERSION
from .memory.utilization import DEFAULT_MAX_STORE_BYTES

logger = logging.getLogger(__name__)

ENV_PREFIX = 'TICKPY_'


class KernelSettings(BaseModel):
    """Tunables for the kernel and its components."""

    cpu_emergency_threshold: float = Field(0.9, gt=0, le=1)
    schema_version: int = Field(CURRENT_SCHEMA_VERSION, ge=1)

    enable_self_healing: bool = True
    auto_repair: bool = True
    log_repairs: bool = True

    init_min_bucket_level: float = Field(500, ge=0)
    init_cpu_safety_margin: float = Field(0.8, gt=0, le=1)
    init_max_ticks: int = Field(10, ge=1)

    bootstrap_target_controller_level: int = Field(2, ge=1)
    bootstrap_min_harvester_count: int = Field(4, ge=0)
    bootstrap_min_energy_available: int = Field(300, ge=0)

    store_max_bytes: int = Field(DEFAULT_MAX_STORE_BYTES, ge=1)
    store_warning_threshold: float = Field(0.7, gt=0, le=1)
    store_critical_threshold: float = Field(0.9, gt=0, le=1)

    log_level: str = 'INFO'
    routine_log_interval: int = Field(100, ge=1)

    @field_validator('log_level')
    @classmethod
    def check_log_level(cls, v: str) -> str:
        level = str(v).upper()
        if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f"Unknown log level: {v}")
        return level


def _from_environment() -> Dict[str, Any]:
    values = {}
    for name in KernelSettings.model_fields:
        raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None and raw != '':
            values[name] = raw
    return values


def load_settings(env_file: Optional[str] = None, **overrides: Any) -> KernelSettings:
    """
    Build KernelSettings from the environment.

    Args:
        env_file: dotenv file to load first (default: ``.env`` in the working directory)
        **overrides: explicit values that win over everything else

    Returns:
        Validated KernelSettings
    """
    load_dotenv(dotenv_path=env_file or '.env')

    values = _from_environment()
    values.update({k: v for k, v in overrides.items() if v is not None})

    settings = KernelSettings.model_validate(values)
    logger.debug(f"Loaded kernel settings: {settings.model_dump()}")
    return settings
