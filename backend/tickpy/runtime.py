"""
Host entry point for tickpy.

The host calls loop() once per cycle. All registration happens inside
build_kernel(), which is re-run every cycle so the kernel built in one cycle
is identical to the kernel built in the next; nothing survives between
cycles except the store.
"""

from typing import Any, Iterable, MutableMapping, Optional

from .bootstrap.bootstrap_phase import BootstrapConfig, BootstrapPhaseManager
from .bootstrap.initializer import InitializationConfig, InitializationManager, InitPhase
from .config import KernelSettings
from .core.context import HostContext
from .core.errors import HostContextError
from .kernel.kernel import CycleReport, Kernel
from .kernel.registry import ProcessDescriptor, ProcessRegistry
from .memory.migration_manager import MemoryMigrationManager
from .memory.self_healer import MemorySelfHealer, SelfHealerConfig
from .memory.utilization import StoreUtilizationMonitor, UtilizationConfig
from .processes import BootstrapProcess, InitializationProcess, MemoryProcess
from .utils.logging import resolve_logger


def build_kernel(settings: Optional[KernelSettings] = None, logger: Any = None,
                 phases: Iterable[InitPhase] = (), processes: Iterable[Any] = ()) -> Kernel:
    """
    Assemble a kernel with the built-in processes plus any extra ones.

    Args:
        settings: KernelSettings (defaults when omitted)
        logger: optional logger or ``{log, warn}`` sink shared by every component
        phases: initialization phases to register
        processes: extra processes, as ProcessDescriptor instances or
            ``(name, priority, run)`` / ``(name, priority, run, requires_init)`` tuples

    Returns:
        A ready-to-run Kernel
    """
    settings = settings or KernelSettings()
    log = resolve_logger(logger, 'tickpy.kernel')

    initializer = InitializationManager(
        InitializationConfig(
            min_bucket_level=settings.init_min_bucket_level,
            cpu_safety_margin=settings.init_cpu_safety_margin,
            max_init_ticks=settings.init_max_ticks,
        ),
        logger=log
    )
    for phase in phases:
        initializer.register_phase(phase)

    bootstrap = BootstrapPhaseManager(
        BootstrapConfig(
            target_controller_level=settings.bootstrap_target_controller_level,
            min_harvester_count=settings.bootstrap_min_harvester_count,
            min_energy_available=settings.bootstrap_min_energy_available,
        ),
        logger=log
    )

    registry = ProcessRegistry()
    init_process = InitializationProcess(initializer)
    registry.register(init_process.name, init_process.priority, init_process.run)
    memory_process = MemoryProcess(StoreUtilizationMonitor(
        UtilizationConfig(
            warning_threshold=settings.store_warning_threshold,
            critical_threshold=settings.store_critical_threshold,
            max_bytes=settings.store_max_bytes,
        ),
        logger=log
    ))
    registry.register(memory_process.name, memory_process.priority, memory_process.run)
    bootstrap_process = BootstrapProcess(bootstrap)
    registry.register(bootstrap_process.name, bootstrap_process.priority, bootstrap_process.run)

    for entry in processes:
        if isinstance(entry, ProcessDescriptor):
            registry.register(entry.name, entry.priority, entry.target, requires_init=entry.requires_init)
        else:
            registry.register(*entry)

    return Kernel(
        registry=registry,
        self_healer=MemorySelfHealer(
            SelfHealerConfig(auto_repair=settings.auto_repair, log_repairs=settings.log_repairs),
            logger=log
        ),
        migration_manager=MemoryMigrationManager(settings.schema_version, logger=log),
        cpu_emergency_threshold=settings.cpu_emergency_threshold,
        enable_self_healing=settings.enable_self_healing,
        logger=log
    )


def loop(host: HostContext, store: MutableMapping[str, Any], settings: Optional[KernelSettings] = None,
         logger: Any = None, phases: Iterable[InitPhase] = (), processes: Iterable[Any] = ()) -> Optional[CycleReport]:
    """
    Run one cycle on behalf of the host.

    Never raises: a malformed context or any fault outside the kernel's own
    containment is logged and None is returned.
    """
    log = resolve_logger(logger, 'tickpy.runtime')
    try:
        if not isinstance(host, HostContext):
            raise HostContextError(f"Invalid host context: expected HostContext, got {type(host).__name__}")
        host.validate()
        if not isinstance(store, MutableMapping):
            raise HostContextError(f"Invalid store: expected a mapping, got {type(store).__name__}")

        kernel = build_kernel(settings=settings, logger=logger, phases=phases, processes=processes)
        return kernel.run(host, store)
    except Exception as e:
        log.error(f"[Runtime] Critical error in main loop: {e}", exc_info=True)
        return None
