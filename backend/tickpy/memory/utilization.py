"""
Store utilization monitoring

Estimates the serialized size of the durable store against the host's
size limit and flags warning and critical levels before the host starts
rejecting writes.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from ..utils.logging import resolve_logger
from .schema import CREEPS_KEY, RESPAWN_KEY, ROLES_KEY, ROOMS_KEY, STATS_KEY, SYSTEM_REPORT_KEY

DEFAULT_MAX_STORE_BYTES = 2 * 1024 * 1024

MEASURED_SUBSYSTEMS = (CREEPS_KEY, ROOMS_KEY, STATS_KEY, SYSTEM_REPORT_KEY, ROLES_KEY, RESPAWN_KEY)


@dataclass
class UtilizationConfig:
    """Thresholds are fractions of max_bytes"""
    warning_threshold: float = 0.7
    critical_threshold: float = 0.9
    max_bytes: int = DEFAULT_MAX_STORE_BYTES


@dataclass
class StoreUtilization:
    """One size measurement of the store"""
    current_bytes: int
    max_bytes: int
    usage_percent: float
    is_warning: bool = False
    is_critical: bool = False
    subsystems: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'currentBytes': self.current_bytes,
            'maxBytes': self.max_bytes,
            'usagePercent': self.usage_percent,
            'isWarning': self.is_warning,
            'isCritical': self.is_critical,
            'subsystems': dict(self.subsystems)
        }


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size}B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f}KB"
    return f"{size / (1024 * 1024):.2f}MB"


def _serialized_size(value: Any) -> int:
    return len(json.dumps(value, separators=(',', ':')))


class StoreUtilizationMonitor:
    """Measures store size and answers allocation and budget questions."""

    def __init__(self, config: Optional[UtilizationConfig] = None, logger: Any = None):
        self.config = config or UtilizationConfig()
        self.logger = resolve_logger(logger, __name__)

    def measure(self, store: Mapping[str, Any]) -> StoreUtilization:
        """
        Measure the store and log when a threshold is crossed.

        Args:
            store: The durable store

        Returns:
            StoreUtilization with per-subsystem sizes
        """
        current = self._estimate_size(store)
        usage = current / self.config.max_bytes

        utilization = StoreUtilization(
            current_bytes=current,
            max_bytes=self.config.max_bytes,
            usage_percent=usage,
            is_warning=usage >= self.config.warning_threshold,
            is_critical=usage >= self.config.critical_threshold,
            subsystems=self._measure_subsystems(store)
        )

        if utilization.is_critical or utilization.is_warning:
            level = 'CRITICAL' if utilization.is_critical else 'WARNING'
            self.logger.warning(
                f"[Memory] {level}: Store usage at {usage * 100:.1f}% "
                f"({format_bytes(current)}/{format_bytes(self.config.max_bytes)})"
            )

        return utilization

    def can_allocate(self, store: Mapping[str, Any], estimated_bytes: int) -> bool:
        """False when adding estimated_bytes would reach the critical threshold"""
        projected = (self._estimate_size(store) + estimated_bytes) / self.config.max_bytes
        if projected >= self.config.critical_threshold:
            self.logger.warning(
                f"[Memory] Cannot allocate {format_bytes(estimated_bytes)}: would exceed critical threshold"
            )
            return False
        return True

    def get_budget(self, subsystem: str, store: Mapping[str, Any]) -> float:
        """Recommended byte budget for one subsystem at the current usage level"""
        utilization = self.measure(store)
        used = utilization.subsystems.get(subsystem, 0)

        if not utilization.is_warning:
            return self.config.max_bytes * 0.1
        if not utilization.is_critical:
            return max(used, self.config.max_bytes * 0.05)
        return used

    def _measure_subsystems(self, store: Mapping[str, Any]) -> Dict[str, int]:
        sizes = {}
        for key in MEASURED_SUBSYSTEMS:
            value = store.get(key)
            if not value:
                continue
            try:
                sizes[key] = _serialized_size(value)
            except (TypeError, ValueError) as e:
                self.logger.warning(f"[Memory] Error measuring {key}: {e}")
        return sizes

    def _estimate_size(self, store: Mapping[str, Any]) -> int:
        try:
            return _serialized_size(store)
        except (TypeError, ValueError) as e:
            self.logger.warning(f"[Memory] Failed to estimate store size: {e}")
            return 0
