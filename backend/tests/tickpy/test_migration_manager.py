"""
Tests for the store migration manager
"""

import copy

import pytest

from conftest import RecordingSink, make_store
from tickpy.memory.migration_manager import MemoryMigrationManager, Migration


def add_field(name, value):
    def handler(store):
        store[name] = value
    return handler


def failing_handler(store):
    store['roles']['half-written'] = 1
    raise RuntimeError("disk on fire")


class TestMigrate:

    def test_fresh_store_gets_version_one(self):
        manager = MemoryMigrationManager(1, logger=RecordingSink())
        store = {'creeps': {}}

        result = manager.migrate(store)

        assert result.success
        assert result.from_version == 0
        assert result.to_version == 1
        assert result.migrations_applied == 1
        assert store['schemaVersion'] == 1

    def test_current_store_is_noop(self):
        manager = MemoryMigrationManager(1, logger=RecordingSink())
        store = make_store()
        before = copy.deepcopy(store)

        result = manager.migrate(store)

        assert result.success
        assert result.migrations_applied == 0
        assert store == before

    def test_store_ahead_of_code_is_left_alone(self):
        sink = RecordingSink()
        manager = MemoryMigrationManager(2, logger=sink)
        store = make_store(schemaVersion=5)

        result = manager.migrate(store)

        assert result.success
        assert store['schemaVersion'] == 5
        assert any('ahead of code version' in line for line in sink.warnings)

    def test_steps_run_in_order_and_stamp_versions(self):
        seen = []
        manager = MemoryMigrationManager(3, logger=RecordingSink())
        manager.register_migration(Migration(3, "third", lambda s: seen.append(('v3', s['schemaVersion']))))
        manager.register_migration(Migration(2, "second", lambda s: seen.append(('v2', s['schemaVersion']))))

        store = make_store(schemaVersion=1)
        result = manager.migrate(store)

        assert result.success
        assert result.migrations_applied == 2
        assert seen == [('v2', 1), ('v3', 2)]
        assert store['schemaVersion'] == 3

    def test_missing_intermediate_step_is_bumped_through(self):
        manager = MemoryMigrationManager(4, logger=RecordingSink())
        manager.register_migration(Migration(3, "add stats", add_field('stats', {'time': 0})))

        store = make_store(schemaVersion=1)
        result = manager.migrate(store)

        assert result.success
        assert result.migrations_applied == 1
        assert store['schemaVersion'] == 4
        assert store['stats'] == {'time': 0}


class TestAtomicity:

    def test_failing_step_leaves_store_untouched(self):
        sink = RecordingSink()
        manager = MemoryMigrationManager(3, logger=sink)
        manager.register_migration(Migration(3, "breaks halfway", failing_handler))

        store = make_store(schemaVersion=2, creeps={'h1': {'role': 'harvester'}}, roles={'harvester': 1})
        snapshot = copy.deepcopy(store)

        result = manager.migrate(store)

        assert not result.success
        assert result.migrations_applied == 0
        assert store == snapshot
        assert store['schemaVersion'] == 2
        assert 'disk on fire' in result.errors[0]
        assert any('Store remains at v2' in line for line in sink.warnings)

    def test_failure_after_successful_step_rolls_back_both(self):
        manager = MemoryMigrationManager(3, logger=RecordingSink())
        manager.register_migration(Migration(2, "adds stats", add_field('stats', {'time': 1})))
        manager.register_migration(Migration(3, "breaks", failing_handler))

        store = make_store(schemaVersion=1)
        snapshot = copy.deepcopy(store)

        result = manager.migrate(store)

        assert not result.success
        assert store == snapshot
        assert 'stats' not in store

    def test_unserializable_result_is_rejected(self):
        manager = MemoryMigrationManager(2, logger=RecordingSink())
        manager.register_migration(Migration(2, "stores a handle", add_field('handle', object())))

        store = make_store(schemaVersion=1)
        snapshot = copy.deepcopy(store)

        result = manager.migrate(store)

        assert not result.success
        assert store == snapshot

    def test_store_identity_preserved_on_success(self):
        manager = MemoryMigrationManager(2, logger=RecordingSink())
        manager.register_migration(Migration(2, "add stats", add_field('stats', {})))
        store = make_store(schemaVersion=1)
        original = store

        manager.migrate(store)

        assert store is original
        assert store['stats'] == {}


class TestRegistration:

    def test_duplicate_version_overwrites_with_warning(self):
        sink = RecordingSink()
        manager = MemoryMigrationManager(2, logger=sink)
        manager.register_migration(Migration(2, "first", add_field('which', 'first')))
        manager.register_migration(Migration(2, "second", add_field('which', 'second')))

        store = make_store(schemaVersion=1)
        manager.migrate(store)

        assert store['which'] == 'second'
        assert any('Overwriting existing migration for version 2' in line for line in sink.warnings)

    def test_builtin_migration_registered(self):
        manager = MemoryMigrationManager(1, logger=RecordingSink())
        migrations = manager.get_migrations()
        assert [m.version for m in migrations] == [1]
        assert migrations[0].description == "Initialize schema version tracking"


class TestPreviewAndStatus:

    def test_preview_does_not_touch_store(self):
        manager = MemoryMigrationManager(2, logger=RecordingSink())
        manager.register_migration(Migration(2, "add stats", add_field('stats', {})))
        store = {'creeps': {}}
        snapshot = copy.deepcopy(store)

        preview = manager.preview_migration(store)

        assert preview.success
        assert preview.from_version == 0
        assert preview.to_version == 2
        assert preview.migrations_to_apply == [
            "v1: Initialize schema version tracking",
            "v2: add stats",
        ]
        assert store == snapshot

    def test_preview_reports_failure(self):
        manager = MemoryMigrationManager(3, logger=RecordingSink())
        manager.register_migration(Migration(3, "breaks", failing_handler))

        preview = manager.preview_migration(make_store(schemaVersion=2))

        assert not preview.success
        assert 'disk on fire' in preview.error

    def test_preview_when_current(self):
        manager = MemoryMigrationManager(1, logger=RecordingSink())
        preview = manager.preview_migration(make_store())
        assert preview.success
        assert preview.migrations_to_apply == []

    def test_status(self):
        manager = MemoryMigrationManager(3, logger=RecordingSink())
        manager.register_migration(Migration(2, "two", add_field('a', 1)))
        manager.register_migration(Migration(3, "three", add_field('b', 2)))

        status = manager.get_status(make_store(schemaVersion=1))

        assert status == {
            'current_version': 3,
            'store_version': 1,
            'pending_migrations': 2,
            'available_migrations': 3,
        }

    @pytest.mark.parametrize('store, expected', [
        ({'schemaVersion': 1}, True),
        ({'schemaVersion': '1'}, False),
        ({}, False),
        ({'schemaVersion': 1, 'bad': {1, 2}}, False),
    ])
    def test_validate_store(self, store, expected):
        manager = MemoryMigrationManager(1, logger=RecordingSink())
        assert manager.validate_store(store) is expected
