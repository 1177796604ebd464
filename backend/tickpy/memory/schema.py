"""
Typed views over the durable store.

The store itself is a loosely-typed document the host persists between
cycles. The self-healer validates it once per cycle against the shapes
below; downstream code reads and writes the core-owned slots through these
models instead of poking at raw dictionaries.
"""

import math
from typing import Any, Dict, List, MutableMapping, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr, ValidationError, field_validator, model_validator

from ..core.errors import StoreValidationError

CURRENT_SCHEMA_VERSION = 1

SCHEMA_VERSION_KEY = 'schemaVersion'
INIT_KEY = 'init'
BOOTSTRAP_KEY = 'bootstrap'
CREEPS_KEY = 'creeps'
ROLES_KEY = 'roles'
ROOMS_KEY = 'rooms'
RESPAWN_KEY = 'respawn'
STATS_KEY = 'stats'
SYSTEM_REPORT_KEY = 'systemReport'
EMERGENCY_RESET_KEY = 'emergencyReset'
STORE_UTILIZATION_KEY = 'memoryUtilization'

REQUIRED_SLOTS = (CREEPS_KEY, ROLES_KEY, ROOMS_KEY, RESPAWN_KEY)


class StoreModel(BaseModel):
    """Base for store slots: camelCase on disk, snake_case in Python."""
    model_config = ConfigDict(populate_by_name=True, extra='allow')

    def to_store(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class InitState(StoreModel):
    """Progress of the resumable initializer."""
    phase: StrictInt = Field(0, ge=0)
    start_tick: StrictInt = Field(0, alias='startTick')
    complete: StrictBool = False
    completed_phases: List[StrictStr] = Field(default_factory=list, alias='completedPhases')

    @model_validator(mode='after')
    def check_progress(self) -> 'InitState':
        if len(self.completed_phases) != self.phase:
            raise ValueError(
                f"completedPhases has {len(self.completed_phases)} entries but phase is {self.phase}"
            )
        if len(set(self.completed_phases)) != len(self.completed_phases):
            raise ValueError("completedPhases contains duplicates")
        return self


class BootstrapState(StoreModel):
    """First-room bootstrap tracking."""
    is_active: StrictBool = Field(False, alias='isActive')
    started_at: Optional[StrictInt] = Field(None, alias='startedAt')
    completed_at: Optional[StrictInt] = Field(None, alias='completedAt')


class RespawnState(StoreModel):
    """Respawn flags; only shape-checked by the core."""
    needs_respawn: StrictBool = Field(False, alias='needsRespawn')
    respawn_requested: StrictBool = Field(False, alias='respawnRequested')
    last_spawn_lost_tick: Optional[float] = Field(None, alias='lastSpawnLostTick')

    @field_validator('last_spawn_lost_tick')
    @classmethod
    def check_finite(cls, v):
        if v is not None and not math.isfinite(v):
            raise ValueError('lastSpawnLostTick must be finite')
        return v


def default_slot(key: str) -> Any:
    """Fresh default value for a required slot."""
    if key == RESPAWN_KEY:
        return RespawnState().to_store()
    return {}


def default_store(schema_version: Optional[int] = None) -> Dict[str, Any]:
    """A store holding only required slots at their defaults."""
    store: Dict[str, Any] = {key: default_slot(key) for key in REQUIRED_SLOTS}
    if schema_version is not None:
        store[SCHEMA_VERSION_KEY] = schema_version
    return store


def is_mapping(value: Any) -> bool:
    return isinstance(value, dict)


def is_count(value: Any) -> bool:
    """Finite, non-negative number; booleans do not count."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0


def is_version(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def read_schema_version(store: MutableMapping[str, Any]) -> int:
    """Stored schema version; absent or malformed reads as 0."""
    value = store.get(SCHEMA_VERSION_KEY)
    return value if is_version(value) else 0


def _read(store: MutableMapping[str, Any], key: str, model):
    raw = store.get(key)
    if raw is None:
        return None
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise StoreValidationError(key, str(e)) from e


def read_init(store: MutableMapping[str, Any]) -> Optional[InitState]:
    return _read(store, INIT_KEY, InitState)


def write_init(store: MutableMapping[str, Any], state: InitState) -> None:
    store[INIT_KEY] = state.to_store()


def read_bootstrap(store: MutableMapping[str, Any]) -> Optional[BootstrapState]:
    return _read(store, BOOTSTRAP_KEY, BootstrapState)


def write_bootstrap(store: MutableMapping[str, Any], state: BootstrapState) -> None:
    store[BOOTSTRAP_KEY] = state.to_store()
