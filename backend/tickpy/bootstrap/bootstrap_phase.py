"""
Bootstrap phase tracking for the first owned room.

While bootstrap is active the agent favours harvesters over every other role
until energy infrastructure is stable. The phase starts on first sight of a
room whose controller is below the target level, and ends (once, for good)
when the controller reaches that level or enough harvesters keep the room
supplied.
"""

from dataclasses import dataclass
from typing import Any, Dict, MutableMapping, Optional, Tuple

from ..core.context import HostContext
from ..core.errors import StoreValidationError
from ..memory.schema import ROLES_KEY, BootstrapState, read_bootstrap, write_bootstrap
from ..utils.logging import resolve_logger

BOOTSTRAP_ROLE_MINIMUMS = {
    'harvester': 6,
    'upgrader': 1,
    'builder': 0,
}


@dataclass
class BootstrapConfig:
    target_controller_level: int = 2
    min_harvester_count: int = 4
    min_energy_available: int = 300


@dataclass
class BootstrapStatus:
    is_active: bool
    should_transition: bool = False
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_active': self.is_active,
            'should_transition': self.should_transition,
            'reason': self.reason
        }


class BootstrapPhaseManager:
    """Owns the store's ``bootstrap`` slot."""

    def __init__(self, config: Optional[BootstrapConfig] = None, logger: Any = None):
        self.config = config or BootstrapConfig()
        self.logger = resolve_logger(logger, __name__)

    def _load(self, host: HostContext, store: MutableMapping[str, Any]) -> BootstrapState:
        try:
            state = read_bootstrap(store)
        except StoreValidationError as e:
            self.logger.warning(f"[Bootstrap] Discarding malformed bootstrap state: {e}")
            state = None

        if state is None:
            should_start = self._should_start(host)
            state = BootstrapState(is_active=should_start, started_at=host.time if should_start else None)
            write_bootstrap(store, state)
            if should_start:
                self.logger.info("[Bootstrap] Bootstrap phase activated - prioritizing harvester spawning")

        return state

    def check_bootstrap_status(self, host: HostContext, store: MutableMapping[str, Any]) -> BootstrapStatus:
        """
        Work out whether bootstrap is active and whether it should end now.

        Creates the bootstrap slot the first time it is called.
        """
        state = self._load(host, store)

        if state.completed_at is not None:
            return BootstrapStatus(is_active=False)

        if state.is_active:
            should_complete, reason = self._should_complete(host, store)
            if should_complete:
                return BootstrapStatus(is_active=True, should_transition=True, reason=reason)

        return BootstrapStatus(is_active=state.is_active)

    def complete_bootstrap(self, host: HostContext, store: MutableMapping[str, Any], reason: str) -> None:
        try:
            state = read_bootstrap(store)
        except StoreValidationError:
            state = None
        if state is None:
            return

        state.is_active = False
        state.completed_at = host.time
        write_bootstrap(store, state)

        duration = host.time - state.started_at if state.started_at is not None else 0
        self.logger.info(
            f"[Bootstrap] Bootstrap phase completed after {duration} ticks. Reason: {reason}. "
            f"Transitioning to normal operations."
        )

    def get_bootstrap_role_minimums(self, is_active: bool) -> Dict[str, int]:
        """Role minimums that override the defaults while bootstrap is active."""
        if not is_active:
            return {}
        return dict(BOOTSTRAP_ROLE_MINIMUMS)

    def _should_start(self, host: HostContext) -> bool:
        room = host.first_owned_room()
        if room is None:
            return False
        return room.controller_level < self.config.target_controller_level

    def _should_complete(self, host: HostContext, store: MutableMapping[str, Any]) -> Tuple[bool, Optional[str]]:
        room = host.first_owned_room()
        if room is None:
            return False, None

        if room.controller_level >= self.config.target_controller_level:
            return True, f"Controller reached level {room.controller_level}"

        roles = store.get(ROLES_KEY) or {}
        harvesters = roles.get('harvester', 0) if isinstance(roles, dict) else 0
        if harvesters >= self.config.min_harvester_count and room.energy_available >= self.config.min_energy_available:
            return True, (
                f"Stable infrastructure: {harvesters} harvesters, "
                f"{room.energy_available}/{room.energy_capacity_available} energy"
            )

        return False, None
