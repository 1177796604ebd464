"""
CPU Budget Guard

Compares CPU consumed this cycle against a margined ceiling. The margin
keeps headroom below the host's hard limit; running past the margined
budget is a planned deferral, never an error.
"""

from dataclasses import dataclass
from typing import Any, Dict


def budget(limit: float, margin: float) -> float:
    """Usable CPU for this cycle."""
    return float(limit) * float(margin)


def remaining(used: float, limit: float, margin: float) -> float:
    """CPU left before the margined ceiling is reached (may be negative)."""
    return budget(limit, margin) - float(used)


def exceeded(used: float, limit: float, margin: float) -> bool:
    """True once consumption has gone past the margined ceiling."""
    return float(used) > budget(limit, margin)


@dataclass
class CpuBudgetGuard:
    """
    Budget check bound to one cycle's CPU reading.

    Consulted at every phase and process boundary: before starting a unit
    of work, never in the middle of one.
    """
    cpu: Any
    margin: float = 0.9

    @property
    def budget(self) -> float:
        return budget(self.cpu.limit, self.margin)

    def used(self) -> float:
        return float(self.cpu.get_used())

    def remaining(self) -> float:
        return remaining(self.used(), self.cpu.limit, self.margin)

    def exceeded(self) -> bool:
        return exceeded(self.used(), self.cpu.limit, self.margin)

    def fits(self, estimate: float) -> bool:
        """Whether work of the given estimated cost can start now."""
        return self.remaining() >= float(estimate)

    def describe(self) -> str:
        return f"{self.used():.2f}/{self.budget:.2f} (limit {self.cpu.limit}, margin {self.margin})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'used': self.used(),
            'limit': self.cpu.limit,
            'margin': self.margin,
            'budget': self.budget,
            'remaining': self.remaining(),
            'exceeded': self.exceeded(),
        }
