"""Runs the resumable initializer as the first process of every cycle."""

from typing import Any

from ..bootstrap.initializer import InitializationManager
from ..core.context import ProcessContext
from ..core.protocol import INIT_COMPLETE, INIT_RESULT

INITIALIZATION_PRIORITY = 1000


class InitializationProcess:
    """
    Advances initialization and publishes whether it is finished.

    Processes registered with ``requires_init=True`` are held back by the
    kernel for as long as ``init.complete`` is False.
    """

    name = 'initialization'
    priority = INITIALIZATION_PRIORITY

    def __init__(self, manager: InitializationManager):
        self.manager = manager

    def run(self, context: ProcessContext) -> Any:
        if self.manager.is_complete(context.store):
            context.protocol.set_fact(INIT_COMPLETE, True, sender=self.name)
            return None

        result = self.manager.tick(context.host, context.store)
        context.protocol.set_fact(INIT_COMPLETE, result.complete, sender=self.name)
        context.protocol.set_fact(INIT_RESULT, result.to_dict(), sender=self.name)
        return result
