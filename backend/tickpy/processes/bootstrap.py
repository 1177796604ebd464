"""Tracks the first-room bootstrap phase once per cycle."""

from ..bootstrap.bootstrap_phase import BootstrapPhaseManager, BootstrapStatus
from ..core.context import ProcessContext
from ..core.protocol import BOOTSTRAP_ACTIVE, BOOTSTRAP_ROLE_MINIMUMS

BOOTSTRAP_PRIORITY = 800


class BootstrapProcess:
    name = 'bootstrap'
    priority = BOOTSTRAP_PRIORITY

    def __init__(self, manager: BootstrapPhaseManager):
        self.manager = manager

    def run(self, context: ProcessContext) -> BootstrapStatus:
        status = self.manager.check_bootstrap_status(context.host, context.store)
        if status.should_transition:
            self.manager.complete_bootstrap(context.host, context.store, status.reason or "criteria met")
            status = BootstrapStatus(is_active=False, reason=status.reason)

        context.protocol.set_fact(BOOTSTRAP_ACTIVE, status.is_active, sender=self.name)
        context.protocol.set_fact(
            BOOTSTRAP_ROLE_MINIMUMS,
            self.manager.get_bootstrap_role_minimums(status.is_active),
            sender=self.name
        )
        return status
