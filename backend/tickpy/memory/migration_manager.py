"""
Store Migration Manager

Upgrades the durable store between schema versions. Migrations are keyed by
the version they produce; a migration registered for version N upgrades a
store at N-1 to N.

Every upgrade runs against a deep working copy of the store. The copy is
validated after the last step and only then committed back in a single
operation, so a failing step leaves the store exactly as it was.
"""

import copy
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, MutableMapping, Optional

from ..core.errors import MigrationError
from ..utils.logging import resolve_logger
from .schema import CURRENT_SCHEMA_VERSION, SCHEMA_VERSION_KEY, is_version, read_schema_version

MigrationHandler = Callable[[MutableMapping[str, Any]], None]


@dataclass
class Migration:
    """A single schema upgrade step"""
    version: int
    description: str
    handler: MigrationHandler


@dataclass
class MigrationResult:
    """Outcome of a migrate() call"""
    success: bool
    from_version: int
    to_version: int
    migrations_applied: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'from_version': self.from_version,
            'to_version': self.to_version,
            'migrations_applied': self.migrations_applied,
            'errors': list(self.errors)
        }


@dataclass
class MigrationPreview:
    """Outcome of a dry run; the store is never modified"""
    success: bool
    from_version: int
    to_version: int
    migrations_to_apply: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'from_version': self.from_version,
            'to_version': self.to_version,
            'migrations_to_apply': list(self.migrations_to_apply),
            'error': self.error
        }


class MemoryMigrationManager:
    """Applies pending migrations to bring the store to the current schema version."""

    def __init__(self, current_version: int = CURRENT_SCHEMA_VERSION, logger: Any = None):
        self.current_version = current_version
        self.logger = resolve_logger(logger, __name__)
        self._migrations: Dict[int, Migration] = {}
        self._register_builtin_migrations()

    def register_migration(self, migration: Migration) -> None:
        """Register a migration; a later registration for the same version wins."""
        if migration.version in self._migrations:
            self.logger.warning(f"[Migration] Overwriting existing migration for version {migration.version}")
        self._migrations[migration.version] = migration

    def get_migrations(self) -> List[Migration]:
        return [self._migrations[v] for v in sorted(self._migrations)]

    def _pending(self, from_version: int) -> List[Migration]:
        return [
            self._migrations[v] for v in sorted(self._migrations)
            if from_version < v <= self.current_version
        ]

    def _apply(self, working: MutableMapping[str, Any], from_version: int,
               result: MigrationResult, announce: bool = True) -> List[str]:
        """Run pending steps on the working copy. Raises on the first failing step."""
        applied = []
        for migration in self._pending(from_version):
            if announce:
                self.logger.info(f"[Migration] Applying v{migration.version}: {migration.description}")
            try:
                migration.handler(working)
            except Exception as e:
                raise MigrationError(migration.version, e) from e
            working[SCHEMA_VERSION_KEY] = migration.version
            result.migrations_applied += 1
            applied.append(f"v{migration.version}: {migration.description}")

        # Versions with no registered step are bumped through
        working[SCHEMA_VERSION_KEY] = self.current_version
        return applied

    def migrate(self, store: MutableMapping[str, Any]) -> MigrationResult:
        """
        Execute pending migrations against the store.

        Args:
            store: The durable store, modified in place only on success

        Returns:
            MigrationResult; on failure the store is left untouched
        """
        from_version = read_schema_version(store)
        result = MigrationResult(success=True, from_version=from_version, to_version=self.current_version)

        if from_version > self.current_version:
            self.logger.warning(
                f"[Migration] Store is at v{from_version}, ahead of code version "
                f"v{self.current_version}; leaving it unchanged"
            )
            return result

        if from_version == self.current_version:
            return result

        self.logger.info(f"[Migration] Starting migration from v{from_version} to v{self.current_version}")

        try:
            working = copy.deepcopy(dict(store))
            self._apply(working, from_version, result)
        except Exception as e:
            return self._fail(result, f"{e}", from_version)

        if not self.validate_store(working):
            return self._fail(result, "Migrated store failed validation", from_version)

        store.clear()
        store.update(working)

        self.logger.info(
            f"[Migration] Successfully migrated to v{self.current_version} "
            f"({result.migrations_applied} migrations applied)"
        )
        return result

    def _fail(self, result: MigrationResult, message: str, from_version: int) -> MigrationResult:
        result.success = False
        result.migrations_applied = 0
        result.errors.append(message)
        self.logger.warning(f"[Migration] {message}")
        self.logger.warning(f"[Migration] Migration failed. Store remains at v{from_version}")
        return result

    def preview_migration(self, store: MutableMapping[str, Any]) -> MigrationPreview:
        """Dry-run the pending migrations on a copy and report what would happen."""
        from_version = read_schema_version(store)
        preview = MigrationPreview(success=True, from_version=from_version, to_version=self.current_version)

        if from_version >= self.current_version:
            preview.to_version = max(from_version, self.current_version)
            return preview

        scratch = MigrationResult(success=True, from_version=from_version, to_version=self.current_version)
        try:
            working = copy.deepcopy(dict(store))
            preview.migrations_to_apply = self._apply(working, from_version, scratch, announce=False)
        except Exception as e:
            preview.success = False
            preview.error = str(e)
            return preview

        if not self.validate_store(working):
            preview.success = False
            preview.error = "Migrated store failed validation"

        return preview

    def validate_store(self, store: MutableMapping[str, Any]) -> bool:
        """Check the store carries an integer version and is serializable."""
        if not is_version(store.get(SCHEMA_VERSION_KEY)):
            self.logger.warning("[Migration] Store validation failed: missing or invalid schemaVersion")
            return False

        try:
            json.dumps(store)
        except (TypeError, ValueError, OverflowError, RecursionError) as e:
            self.logger.warning(f"[Migration] Store validation failed: {e}")
            return False

        return True

    def get_status(self, store: MutableMapping[str, Any]) -> Dict[str, int]:
        """Current migration status for the given store."""
        store_version = read_schema_version(store)
        return {
            'current_version': self.current_version,
            'store_version': store_version,
            'pending_migrations': len(self._pending(store_version)),
            'available_migrations': len(self._migrations),
        }

    def _register_builtin_migrations(self) -> None:
        def initialize_version_tracking(store: MutableMapping[str, Any]) -> None:
            if not is_version(store.get(SCHEMA_VERSION_KEY)):
                store[SCHEMA_VERSION_KEY] = 1

        self.register_migration(Migration(
            version=1,
            description="Initialize schema version tracking",
            handler=initialize_version_tracking
        ))
