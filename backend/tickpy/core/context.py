"""
Cycle context passed explicitly through the execution core.

The host builds a HostContext for every cycle and hands it to the kernel
together with the durable store. Nothing in tickpy keeps a module-level
reference to the current cycle, so synthetic contexts can be built freely
in tests and simulations.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, MutableMapping, Optional, Set

from .errors import HostContextError


@dataclass
class CpuReading:
    """CPU readings for the current cycle.

    ``used`` is a static reading; hosts that can sample live usage pass a
    ``sampler`` instead, which takes precedence.
    """
    limit: float
    bucket: float = 10000.0
    used: float = 0.0
    sampler: Optional[Callable[[], float]] = None

    def get_used(self) -> float:
        if self.sampler is not None:
            return float(self.sampler())
        return float(self.used)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'limit': self.limit,
            'bucket': self.bucket,
            'used': self.get_used(),
        }


@dataclass
class SimulatedCpu(CpuReading):
    """CPU reading whose usage advances only when work is charged to it."""

    def charge(self, amount: float) -> float:
        self.used += float(amount)
        return self.used


@dataclass
class RoomSnapshot:
    """Minimal per-room facts the core needs for bootstrap tracking."""
    name: str
    my: bool = True
    controller_level: int = 0
    energy_available: int = 0
    energy_capacity_available: int = 300

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RoomSnapshot':
        return cls(
            name=str(data.get('name', '')),
            my=bool(data.get('my', True)),
            controller_level=int(data.get('controller_level', 0) or 0),
            energy_available=int(data.get('energy_available', 0) or 0),
            energy_capacity_available=int(data.get('energy_capacity_available', 300) or 300),
        )


@dataclass
class HostContext:
    """Everything the host supplies for one cycle, besides the store itself.

    ``creeps`` is the set of unit names alive this cycle, or None when the
    host does not report them (pruning is then skipped).
    """
    time: int
    cpu: CpuReading
    rooms: Dict[str, RoomSnapshot] = field(default_factory=dict)
    creeps: Optional[Set[str]] = None

    def validate(self) -> 'HostContext':
        """Check the context shape at the host boundary."""
        if isinstance(self.time, bool) or not isinstance(self.time, int):
            raise HostContextError(f"Invalid host context: time must be an integer, got {self.time!r}")
        if self.cpu is None or not callable(getattr(self.cpu, 'get_used', None)):
            raise HostContextError("Invalid host context: missing cpu interface")
        for attr in ('limit', 'bucket'):
            if not isinstance(getattr(self.cpu, attr, None), (int, float)):
                raise HostContextError(f"Invalid host context: cpu.{attr} must be numeric")
        if self.rooms is None or not isinstance(self.rooms, dict):
            raise HostContextError("Invalid host context: rooms must be a mapping")
        return self

    def first_owned_room(self) -> Optional[RoomSnapshot]:
        for room in self.rooms.values():
            if room.my:
                return room
        return None


@dataclass
class ProcessContext:
    """What a process sees while it runs: the cycle, the store and the protocol."""
    host: HostContext
    store: MutableMapping[str, Any]
    protocol: Any
    logger: logging.Logger

    @property
    def time(self) -> int:
        return self.host.time

    @property
    def cpu(self) -> CpuReading:
        return self.host.cpu
