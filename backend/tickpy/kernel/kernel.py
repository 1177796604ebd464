"""
Phase Scheduler (Kernel)

Drives one cycle: heal the store, migrate it, check the CPU budget, then run
registered processes in priority order. The kernel never raises to the host;
every outcome, including faults, is reported through a CycleReport.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, MutableMapping, Optional

from ..core.budget import CpuBudgetGuard
from ..core.context import HostContext, ProcessContext
from ..core.protocol import INIT_COMPLETE, CycleProtocol
from ..memory.migration_manager import MemoryMigrationManager, MigrationResult
from ..memory.schema import EMERGENCY_RESET_KEY
from ..memory.self_healer import HealthCheckResult, MemorySelfHealer
from ..utils.logging import resolve_logger, safe_repr
from .registry import ProcessRegistry


class CycleStatus(Enum):
    """How a cycle ended"""
    COMPLETED = "completed"
    RESET = "reset"
    CPU_ABORT = "cpu_abort"
    FAULT = "fault"


@dataclass
class CycleReport:
    """Everything that happened during one kernel cycle"""
    tick: int
    status: CycleStatus = CycleStatus.COMPLETED
    health: Optional[HealthCheckResult] = None
    migration: Optional[MigrationResult] = None
    processes_run: List[str] = field(default_factory=list)
    processes_failed: List[str] = field(default_factory=list)
    processes_skipped: List[str] = field(default_factory=list)
    processes_waiting: List[str] = field(default_factory=list)
    cpu_used: float = 0.0
    error: Optional[str] = None
    protocol: Optional[CycleProtocol] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tick': self.tick,
            'status': self.status.value,
            'health': self.health.to_dict() if self.health else None,
            'migration': self.migration.to_dict() if self.migration else None,
            'processes_run': list(self.processes_run),
            'processes_failed': list(self.processes_failed),
            'processes_skipped': list(self.processes_skipped),
            'processes_waiting': list(self.processes_waiting),
            'cpu_used': self.cpu_used,
            'error': self.error,
            'facts': self.protocol.snapshot()['facts'] if self.protocol is not None else {},
        }


class Kernel:
    """
    Per-cycle scheduler.

    Components are cheap to construct; build_kernel() in tickpy.runtime
    rebuilds the kernel with identical registrations every cycle.
    """

    def __init__(self, registry: Optional[ProcessRegistry] = None,
                 self_healer: Optional[MemorySelfHealer] = None,
                 migration_manager: Optional[MemoryMigrationManager] = None,
                 cpu_emergency_threshold: float = 0.9,
                 enable_self_healing: bool = True,
                 logger: Any = None):
        self.logger = resolve_logger(logger, __name__)
        self.registry = registry if registry is not None else ProcessRegistry()
        self.self_healer = self_healer or MemorySelfHealer(logger=self.logger)
        self.migration_manager = migration_manager or MemoryMigrationManager(logger=self.logger)
        self.cpu_emergency_threshold = cpu_emergency_threshold
        self.enable_self_healing = enable_self_healing

    def run(self, host: HostContext, store: MutableMapping[str, Any]) -> CycleReport:
        """
        Execute one cycle.

        Args:
            host: This cycle's host context
            store: The durable store, mutated in place

        Returns:
            CycleReport describing the cycle
        """
        start_cpu = host.cpu.get_used()
        protocol = CycleProtocol(tick=host.time)
        report = CycleReport(tick=host.time, protocol=protocol)

        try:
            if self.enable_self_healing and not self._heal(store, protocol, report):
                return self._finish(host, report, start_cpu)

            report.migration = self.migration_manager.migrate(store)
            self._log_migration(report.migration)
        except Exception as e:
            self.logger.error(f"[Kernel] Tick {host.time} aborted during store maintenance: {e}", exc_info=True)
            self.logger.debug(f"[Kernel] Store at fault: {safe_repr(store)}")
            report.status = CycleStatus.FAULT
            report.error = str(e)
            return self._finish(host, report, start_cpu)

        guard = CpuBudgetGuard(host.cpu, self.cpu_emergency_threshold)
        if guard.exceeded():
            self.logger.warning(
                f"[Kernel] CPU threshold exceeded before processes ({guard.describe()}), ending cycle"
            )
            report.status = CycleStatus.CPU_ABORT
            report.processes_skipped = self.registry.names()
            return self._finish(host, report, start_cpu)

        self._run_processes(host, store, protocol, guard, report)
        return self._finish(host, report, start_cpu)

    def _heal(self, store, protocol: CycleProtocol, report: CycleReport) -> bool:
        """Run the self-healer. Returns False when the cycle must end after a reset."""
        report.health = self.self_healer.check_and_repair(store)
        if not report.health.requires_reset:
            if store.pop(EMERGENCY_RESET_KEY, None) is not None:
                self.logger.info("[Kernel] Store healthy again, clearing emergency reset flag")
            return True

        self.logger.warning("[Kernel] Store requires emergency reset")
        self.self_healer.emergency_reset(store)
        store[EMERGENCY_RESET_KEY] = True
        protocol.set_emergency_reset(True, sender='kernel')
        report.status = CycleStatus.RESET
        return False

    def _log_migration(self, result: MigrationResult) -> None:
        if not result.success:
            self.logger.warning(
                f"[Kernel] Store migration failed, continuing at v{result.from_version}: {'; '.join(result.errors)}"
            )
        elif result.migrations_applied > 0:
            self.logger.info(
                f"[Kernel] Store migrated v{result.from_version} -> v{result.to_version} "
                f"({result.migrations_applied} migration(s))"
            )

    def _init_pending(self, protocol: CycleProtocol) -> bool:
        return protocol.has_fact(INIT_COMPLETE) and not protocol.get_fact(INIT_COMPLETE)

    def _run_processes(self, host: HostContext, store, protocol: CycleProtocol,
                       guard: CpuBudgetGuard, report: CycleReport) -> None:
        processes = self.registry.get_all()
        if not processes:
            self.logger.warning("[Kernel] No processes registered")
            return

        for index, descriptor in enumerate(processes):
            if guard.exceeded():
                report.processes_skipped = [p.name for p in processes[index:]]
                report.status = CycleStatus.CPU_ABORT
                self.logger.warning(
                    f"[Kernel] CPU threshold exceeded ({guard.describe()}), "
                    f"skipping {len(report.processes_skipped)} remaining process(es)"
                )
                break

            if descriptor.requires_init and self._init_pending(protocol):
                report.processes_waiting.append(descriptor.name)
                continue

            context = ProcessContext(host=host, store=store, protocol=protocol, logger=self.logger)
            try:
                descriptor.resolve()(context)
                report.processes_run.append(descriptor.name)
            except Exception as e:
                report.processes_failed.append(descriptor.name)
                self.logger.error(f"[Kernel] Process '{descriptor.name}' failed: {e}", exc_info=True)

    def _finish(self, host: HostContext, report: CycleReport, start_cpu: float) -> CycleReport:
        report.cpu_used = host.cpu.get_used() - start_cpu

        if report.status is CycleStatus.COMPLETED and not report.processes_failed:
            self.logger.info(
                f"[Kernel] Tick {host.time} completed: {len(report.processes_run)} processes executed successfully"
            )
        elif report.status in (CycleStatus.COMPLETED, CycleStatus.CPU_ABORT):
            self.logger.warning(
                f"[Kernel] Tick {host.time} completed: {len(report.processes_run)} run, "
                f"{len(report.processes_failed)} failed, {len(report.processes_skipped)} skipped"
            )
        return report

    def get_process_count(self) -> int:
        return self.registry.size()

    def get_process_names(self) -> List[str]:
        return self.registry.names()
