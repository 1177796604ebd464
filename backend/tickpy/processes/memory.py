"""Keeps per-creep store entries, role counts and size figures in step with the host."""

from collections import Counter
from typing import Dict, Optional

from ..core.context import ProcessContext
from ..memory.schema import CREEPS_KEY, ROLES_KEY, STORE_UTILIZATION_KEY
from ..memory.utilization import StoreUtilizationMonitor

MEMORY_PRIORITY = 900


class MemoryProcess:
    """Prunes entries for creeps that no longer exist, recounts roles and measures the store."""

    name = 'memory'
    priority = MEMORY_PRIORITY

    def __init__(self, monitor: Optional[StoreUtilizationMonitor] = None):
        self.monitor = monitor or StoreUtilizationMonitor()

    def run(self, context: ProcessContext) -> Dict[str, int]:
        creeps = context.store.setdefault(CREEPS_KEY, {})

        if context.host.creeps is not None:
            dead = [name for name in creeps if name not in context.host.creeps]
            for name in dead:
                del creeps[name]
            if dead:
                context.logger.debug(f"[MemoryProcess] Pruned {len(dead)} dead creep(s): {', '.join(dead)}")

        counts = Counter(
            entry['role'] for entry in creeps.values()
            if isinstance(entry, dict) and isinstance(entry.get('role'), str)
        )
        role_counts = dict(counts)

        context.store[ROLES_KEY] = role_counts
        context.protocol.set_role_counts(role_counts, sender=self.name)

        utilization = self.monitor.measure(context.store).to_dict()
        context.protocol.set_memory_utilization(utilization, sender=self.name)
        context.store[STORE_UTILIZATION_KEY] = utilization
        return role_counts
