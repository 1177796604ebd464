"""
Store Self-Healer

Detects and repairs corrupted or missing structures in the durable store.
Runs first in every cycle, before anything else reads the store.

Repair policy:
- required slots that are absent or the wrong shape are reset to defaults
- per-entry maps drop only the entries that fail validation
- optional slots are left alone when absent and removed when malformed
- a store that cannot survive a serialization round-trip is not touched at
  all; the caller is told a reset is required
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, MutableMapping, Optional

from ..core.errors import StoreValidationError
from ..utils.logging import resolve_logger
from .schema import (
    BOOTSTRAP_KEY,
    CREEPS_KEY,
    EMERGENCY_RESET_KEY,
    INIT_KEY,
    RESPAWN_KEY,
    ROLES_KEY,
    ROOMS_KEY,
    SCHEMA_VERSION_KEY,
    STATS_KEY,
    SYSTEM_REPORT_KEY,
    default_slot,
    default_store,
    is_count,
    is_mapping,
    is_version,
    read_bootstrap,
    read_init,
)


@dataclass
class SelfHealerConfig:
    """Configuration for store self-healing"""
    auto_repair: bool = True
    log_repairs: bool = True


@dataclass
class HealthCheckResult:
    """Result of a store health check and repair pass"""
    is_healthy: bool = True
    issues_found: List[str] = field(default_factory=list)
    issues_repaired: List[str] = field(default_factory=list)
    requires_reset: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_healthy': self.is_healthy,
            'issues_found': list(self.issues_found),
            'issues_repaired': list(self.issues_repaired),
            'requires_reset': self.requires_reset
        }


class MemorySelfHealer:
    """
    Validates and repairs the structural invariants of the durable store.

    check_and_repair never raises: a fault inside one slot check is itself
    recorded as an issue and that slot is defaulted (required slots) or
    removed (optional slots).
    """

    def __init__(self, config: Optional[SelfHealerConfig] = None, logger: Any = None):
        self.config = config or SelfHealerConfig()
        self.logger = resolve_logger(logger, __name__)

    def check_and_repair(self, store: Any) -> HealthCheckResult:
        """
        Perform a full health check of the store, repairing in place.

        Args:
            store: The durable store document

        Returns:
            HealthCheckResult describing what was found and repaired
        """
        result = HealthCheckResult()

        if not isinstance(store, MutableMapping):
            self._found(result, f"Store is not a mapping (got {type(store).__name__})")
            result.requires_reset = True
            self._warn("CRITICAL: Store is not a mapping. Emergency reset required.")
            return result

        # Repairing a cyclic or unserializable graph is itself unsafe
        if not self._is_serializable(store):
            self._found(result, "Store contains circular references or unserializable data")
            result.requires_reset = True
            self._warn("CRITICAL: Store is not serializable. Emergency reset required.")
            return result

        for slot, check, required in self._checks():
            try:
                check(store, result)
            except Exception as e:
                self._contain_fault(store, result, slot, required, e)

        if result.issues_found and self.config.log_repairs:
            self.logger.info(
                f"[MemorySelfHealer] Found {len(result.issues_found)} issue(s), "
                f"repaired {len(result.issues_repaired)}"
            )
            for issue in result.issues_found:
                self.logger.debug(f"[MemorySelfHealer]   - {issue}")

        return result

    def emergency_reset(self, store: MutableMapping[str, Any]) -> None:
        """
        Reset the store to safe defaults, keeping only the schema version.

        The only recovery path when check_and_repair reports requires_reset,
        and usable by callers for other catastrophic conditions.
        """
        self.logger.warning("[MemorySelfHealer] Performing emergency store reset")

        version = store.get(SCHEMA_VERSION_KEY) if isinstance(store, MutableMapping) else None
        discarded = len(store)
        store.clear()

        if is_version(version):
            store[SCHEMA_VERSION_KEY] = version
        store.update(default_store())

        self.logger.info(
            f"[MemorySelfHealer] Emergency reset complete. Discarded {discarded} slot(s); "
            f"store restored to safe defaults (schemaVersion={store.get(SCHEMA_VERSION_KEY)})."
        )

    def _checks(self):
        return [
            (CREEPS_KEY, self._check_creeps, True),
            (ROLES_KEY, self._check_roles, True),
            (ROOMS_KEY, self._check_rooms, True),
            (RESPAWN_KEY, self._check_respawn, True),
            (STATS_KEY, self._check_stats, False),
            (SYSTEM_REPORT_KEY, self._check_system_report, False),
            (SCHEMA_VERSION_KEY, self._check_version, False),
            (INIT_KEY, self._check_init, False),
            (BOOTSTRAP_KEY, self._check_bootstrap, False),
            (EMERGENCY_RESET_KEY, self._check_emergency_flag, False),
        ]

    @staticmethod
    def _is_serializable(store: MutableMapping[str, Any]) -> bool:
        try:
            json.loads(json.dumps(store))
            return True
        except (TypeError, ValueError, OverflowError, RecursionError):
            return False

    def _found(self, result: HealthCheckResult, issue: str) -> None:
        result.issues_found.append(issue)
        result.is_healthy = False

    def _repair(self, result: HealthCheckResult, description: str, action: Callable[[], None]) -> None:
        if not self.config.auto_repair:
            return
        action()
        result.issues_repaired.append(description)

    def _warn(self, message: str) -> None:
        if self.config.log_repairs:
            self.logger.warning(f"[MemorySelfHealer] {message}")

    def _contain_fault(self, store, result: HealthCheckResult, slot: str, required: bool, error: Exception) -> None:
        self._found(result, f"Check of Store.{slot} failed: {error}")
        self._warn(f"Check of Store.{slot} raised {type(error).__name__}: {error}")
        if required:
            self._repair(result, f"Reset Store.{slot} to default",
                         lambda: store.__setitem__(slot, default_slot(slot)))
        else:
            self._repair(result, f"Removed Store.{slot}", lambda: store.pop(slot, None))

    def _check_required_mapping(self, store, result: HealthCheckResult, key: str) -> bool:
        """Ensure a required slot holds a mapping. Returns True when entries should be checked."""
        if store.get(key) is None:
            self._found(result, f"Store.{key} is missing")
            self._repair(result, f"Initialized Store.{key}",
                         lambda: store.__setitem__(key, default_slot(key)))
            return False

        if not is_mapping(store[key]):
            self._found(result, f"Store.{key} is not a valid mapping (got {type(store[key]).__name__})")
            self._repair(result, f"Reset Store.{key} to default",
                         lambda: store.__setitem__(key, default_slot(key)))
            return False

        return True

    def _drop_invalid_entries(self, store, result: HealthCheckResult, key: str,
                              is_valid: Callable[[Any], bool], describe: Callable[[str, Any], str]) -> None:
        entries = store[key]
        for name, value in list(entries.items()):
            if is_valid(value):
                continue
            self._found(result, describe(name, value))
            self._repair(result, f'Removed invalid Store.{key}["{name}"]',
                         lambda name=name: entries.pop(name, None))

    def _check_creeps(self, store, result: HealthCheckResult) -> None:
        if self._check_required_mapping(store, result, CREEPS_KEY):
            self._drop_invalid_entries(
                store, result, CREEPS_KEY, is_mapping,
                lambda name, value: f'Store.creeps["{name}"] is invalid'
            )

    def _check_roles(self, store, result: HealthCheckResult) -> None:
        if self._check_required_mapping(store, result, ROLES_KEY):
            self._drop_invalid_entries(
                store, result, ROLES_KEY, is_count,
                lambda name, value: f'Store.roles["{name}"] has invalid count: {value!r}'
            )

    def _check_rooms(self, store, result: HealthCheckResult) -> None:
        self._check_required_mapping(store, result, ROOMS_KEY)

    def _check_respawn(self, store, result: HealthCheckResult) -> None:
        if not self._check_required_mapping(store, result, RESPAWN_KEY):
            return

        respawn = store[RESPAWN_KEY]
        for flag in ('needsRespawn', 'respawnRequested'):
            if not isinstance(respawn.get(flag), bool):
                self._found(result, f"Store.respawn.{flag} is not a boolean")
                self._repair(result, f"Reset Store.respawn.{flag} to False",
                             lambda flag=flag: respawn.__setitem__(flag, False))

        lost = respawn.get('lastSpawnLostTick')
        if 'lastSpawnLostTick' in respawn and lost is not None and not is_count(lost):
            self._found(result, "Store.respawn.lastSpawnLostTick is invalid")
            self._repair(result, "Removed Store.respawn.lastSpawnLostTick",
                         lambda: respawn.pop('lastSpawnLostTick', None))

    def _check_optional_record(self, store, result: HealthCheckResult, key: str, numeric_field: str) -> None:
        value = store.get(key)
        if value is None:
            return

        if not is_mapping(value):
            self._found(result, f"Store.{key} is not a valid mapping")
            self._repair(result, f"Removed invalid Store.{key}", lambda: store.pop(key, None))
            return

        field_value = value.get(numeric_field)
        if field_value is not None and (isinstance(field_value, bool) or not isinstance(field_value, (int, float))):
            self._found(result, f"Store.{key}.{numeric_field} is not a number")
            self._repair(result, f"Removed invalid Store.{key}", lambda: store.pop(key, None))

    def _check_stats(self, store, result: HealthCheckResult) -> None:
        self._check_optional_record(store, result, STATS_KEY, 'time')

    def _check_system_report(self, store, result: HealthCheckResult) -> None:
        self._check_optional_record(store, result, SYSTEM_REPORT_KEY, 'lastGenerated')

    def _check_version(self, store, result: HealthCheckResult) -> None:
        if SCHEMA_VERSION_KEY not in store or is_version(store[SCHEMA_VERSION_KEY]):
            return
        self._found(result, f"Store.schemaVersion is not a valid version: {store[SCHEMA_VERSION_KEY]!r}")
        self._repair(result, "Removed invalid Store.schemaVersion (will be initialized by migration manager)",
                     lambda: store.pop(SCHEMA_VERSION_KEY, None))

    def _check_typed_slot(self, store, result: HealthCheckResult, key: str, reader) -> None:
        try:
            reader(store)
        except StoreValidationError as e:
            self._found(result, f"Store.{key} is malformed: {e}")
            self._repair(result, f"Removed invalid Store.{key}", lambda: store.pop(key, None))

    def _check_init(self, store, result: HealthCheckResult) -> None:
        self._check_typed_slot(store, result, INIT_KEY, read_init)

    def _check_bootstrap(self, store, result: HealthCheckResult) -> None:
        self._check_typed_slot(store, result, BOOTSTRAP_KEY, read_bootstrap)

    def _check_emergency_flag(self, store, result: HealthCheckResult) -> None:
        if EMERGENCY_RESET_KEY in store and not isinstance(store[EMERGENCY_RESET_KEY], bool):
            self._found(result, "Store.emergencyReset is not a boolean")
            self._repair(result, "Removed invalid Store.emergencyReset",
                         lambda: store.pop(EMERGENCY_RESET_KEY, None))
