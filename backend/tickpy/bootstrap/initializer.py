"""
Resumable Initializer

Spreads one-time setup work across several cycles after a deployment or a
store reset. Phases run in priority order (lower first) while the CPU budget
allows; progress lives in the store's ``init`` slot so the next cycle picks
up where this one stopped.

A phase that raises is logged and counted as completed; failed phases are
never retried.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, MutableMapping, Optional

from ..core.budget import CpuBudgetGuard
from ..core.context import HostContext
from ..core.errors import RegistrationError, StoreValidationError
from ..memory.schema import INIT_KEY, InitState, read_init, write_init
from ..utils.logging import resolve_logger


@dataclass(frozen=True)
class InitPhase:
    """One unit of initialization work"""
    name: str
    priority: int
    execute: Callable[[], Any]
    cpu_estimate: float = 0.0


@dataclass
class InitializationConfig:
    """Initializer thresholds"""
    min_bucket_level: float = 500
    cpu_safety_margin: float = 0.8
    max_init_ticks: int = 10


@dataclass
class InitTickResult:
    """What one initializer tick did"""
    complete: bool = False
    phases_executed: List[str] = field(default_factory=list)
    phases_skipped: List[str] = field(default_factory=list)
    cpu_used: float = 0.0
    deferred: bool = False
    forced: bool = False
    remaining_phases: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'complete': self.complete,
            'phases_executed': list(self.phases_executed),
            'phases_skipped': list(self.phases_skipped),
            'cpu_used': self.cpu_used,
            'deferred': self.deferred,
            'forced': self.forced,
            'remaining_phases': self.remaining_phases
        }


class InitializationManager:
    """
    Manages phased initialization across cycles.

    Usage:
        manager = InitializationManager()
        manager.register_phase(InitPhase("critical-systems", 0, init_critical, cpu_estimate=5))

        if not manager.is_complete(store):
            result = manager.tick(host, store)
    """

    def __init__(self, config: Optional[InitializationConfig] = None, logger: Any = None):
        self.config = config or InitializationConfig()
        self.logger = resolve_logger(logger, __name__)
        self._phases: List[InitPhase] = []

    def register_phase(self, phase: InitPhase) -> None:
        """Register a phase; phases are kept sorted by priority, stable for ties."""
        if any(existing.name == phase.name for existing in self._phases):
            raise RegistrationError(f"Initialization phase '{phase.name}' is already registered")
        self._phases.append(phase)
        self._phases.sort(key=lambda p: p.priority)

    def get_phases(self) -> List[InitPhase]:
        return list(self._phases)

    def is_complete(self, store: MutableMapping[str, Any]) -> bool:
        """True when there is nothing to initialize or the store says we are done."""
        if not self._phases:
            return True
        state = self._read_state(store)
        return state is not None and state.complete

    def needs_initialization(self, store: MutableMapping[str, Any]) -> bool:
        return not self.is_complete(store)

    def _read_state(self, store: MutableMapping[str, Any]) -> Optional[InitState]:
        try:
            return read_init(store)
        except StoreValidationError as e:
            self.logger.warning(f"[InitializationManager] Discarding malformed init state: {e}")
            store.pop(INIT_KEY, None)
            return None

    def tick(self, host: HostContext, store: MutableMapping[str, Any]) -> InitTickResult:
        """
        Execute one cycle's worth of initialization.

        Args:
            host: Cycle context (time and CPU readings)
            store: The durable store holding the ``init`` slot

        Returns:
            InitTickResult for this cycle
        """
        result = InitTickResult()

        if not self._phases:
            result.complete = True
            return result

        state = self._read_state(store)
        if state is None:
            state = InitState(phase=0, start_tick=host.time, complete=False, completed_phases=[])
            write_init(store, state)
            self.logger.info(f"[InitializationManager] Starting phased initialization (tick {host.time})")

        if state.complete:
            result.complete = True
            return result

        if host.cpu.bucket < self.config.min_bucket_level:
            self.logger.warning(
                f"[InitializationManager] CPU bucket ({host.cpu.bucket}) below threshold "
                f"({self.config.min_bucket_level}), deferring initialization"
            )
            result.deferred = True
            result.remaining_phases = len(self._phases) - state.phase
            return result

        ticks_elapsed = host.time - state.start_tick
        if ticks_elapsed >= self.config.max_init_ticks:
            remaining = max(0, len(self._phases) - state.phase)
            self.logger.warning(
                f"[InitializationManager] Max init ticks ({self.config.max_init_ticks}) exceeded, "
                f"force-completing initialization at phase {state.phase}/{len(self._phases)}"
            )
            state.complete = True
            write_init(store, state)
            result.complete = True
            result.forced = True
            result.remaining_phases = remaining
            return result

        guard = CpuBudgetGuard(host.cpu, self.config.cpu_safety_margin)
        start_cpu = guard.used()

        while state.phase < len(self._phases):
            phase = self._phases[state.phase]

            if not guard.fits(phase.cpu_estimate):
                result.phases_skipped = [p.name for p in self._phases[state.phase:]]
                self.logger.info(
                    f"[InitializationManager] CPU budget exhausted ({guard.used():.2f}/{guard.budget:.2f}), "
                    f"skipping {len(result.phases_skipped)} phases until next tick"
                )
                break

            phase_start = guard.used()
            try:
                phase.execute()
                self.logger.info(
                    f'[InitializationManager] Phase "{phase.name}" completed '
                    f"(CPU: {guard.used() - phase_start:.2f}, estimate: {phase.cpu_estimate})"
                )
            except Exception as e:
                self.logger.warning(f'[InitializationManager] Phase "{phase.name}" failed: {e}')

            state.completed_phases.append(phase.name)
            state.phase += 1
            write_init(store, state)
            result.phases_executed.append(phase.name)

        if state.phase >= len(self._phases):
            state.complete = True
            write_init(store, state)
            result.complete = True
            total_ticks = host.time - state.start_tick + 1
            self.logger.info(
                f"[InitializationManager] Initialization complete in {total_ticks} tick(s) "
                f"({len(result.phases_executed)} phases executed this tick)"
            )

        result.remaining_phases = len(self._phases) - state.phase
        result.cpu_used = guard.used() - start_cpu
        return result

    def reset(self, store: MutableMapping[str, Any]) -> None:
        """Drop initialization progress so the next tick starts over."""
        store.pop(INIT_KEY, None)
        self.logger.info("[InitializationManager] Initialization state reset")

    def get_status(self, store: MutableMapping[str, Any], current_tick: Optional[int] = None) -> Dict[str, Any]:
        state = self._read_state(store)
        tick = current_tick if current_tick is not None else 0
        return {
            'total_phases': len(self._phases),
            'completed_phases': state.phase if state else 0,
            'current_phase': (
                self._phases[state.phase].name
                if state is not None and state.phase < len(self._phases) else None
            ),
            'ticks_elapsed': tick - state.start_tick if state else 0,
            'is_complete': state.complete if state else False,
        }
