"""
Tests for store utilization monitoring
"""

import pytest

from conftest import RecordingSink
from tickpy.memory.utilization import StoreUtilizationMonitor, UtilizationConfig, format_bytes


def padded_store(total_bytes):
    """A store whose compact JSON form is exactly total_bytes long ('{"x":""}' is 8)."""
    return {'x': 'a' * (total_bytes - 8)}


def creeps_store(creeps_bytes):
    """Store holding only creeps; the creeps slot serializes to creeps_bytes ('{"a":""}' is 8)."""
    return {'creeps': {'a': 'b' * (creeps_bytes - 8)}}


def make_monitor(sink=None, max_bytes=100):
    return StoreUtilizationMonitor(UtilizationConfig(max_bytes=max_bytes), logger=sink or RecordingSink())


class TestMeasure:

    def test_below_warning(self):
        sink = RecordingSink()
        result = make_monitor(sink).measure(padded_store(69))

        assert result.current_bytes == 69
        assert result.usage_percent == pytest.approx(0.69)
        assert not result.is_warning
        assert not result.is_critical
        assert sink.warnings == []

    def test_warning_threshold_is_inclusive(self):
        sink = RecordingSink()
        result = make_monitor(sink).measure(padded_store(70))

        assert result.is_warning
        assert not result.is_critical
        assert sink.warnings == ["[Memory] WARNING: Store usage at 70.0% (70B/100B)"]

    def test_critical_threshold_is_inclusive(self):
        sink = RecordingSink()
        below = make_monitor().measure(padded_store(89))
        result = make_monitor(sink).measure(padded_store(90))

        assert not below.is_critical
        assert result.is_warning
        assert result.is_critical
        assert sink.warnings[0].startswith("[Memory] CRITICAL: Store usage at 90.0%")

    def test_subsystems_measured_when_present(self):
        store = creeps_store(20)
        store['roles'] = {}

        result = make_monitor().measure(store)

        assert result.subsystems == {'creeps': 20}

    def test_unserializable_store_measures_zero(self):
        sink = RecordingSink()
        store = {'creeps': {}}
        store['creeps']['self'] = store

        result = make_monitor(sink).measure(store)

        assert result.current_bytes == 0
        assert result.subsystems == {}
        assert any("Failed to estimate store size" in line for line in sink.warnings)

    def test_to_dict_uses_store_field_names(self):
        data = make_monitor().measure(padded_store(50)).to_dict()
        assert data == {
            'currentBytes': 50,
            'maxBytes': 100,
            'usagePercent': pytest.approx(0.5),
            'isWarning': False,
            'isCritical': False,
            'subsystems': {}
        }


class TestCanAllocate:

    def test_allows_allocation_below_critical(self):
        assert make_monitor().can_allocate(padded_store(50), 39)

    def test_refuses_allocation_reaching_critical(self):
        sink = RecordingSink()
        assert not make_monitor(sink).can_allocate(padded_store(50), 40)
        assert sink.warnings == ["[Memory] Cannot allocate 40B: would exceed critical threshold"]


class TestGetBudget:

    def test_liberal_budget_under_warning(self):
        assert make_monitor().get_budget('creeps', creeps_store(18)) == pytest.approx(10.0)

    def test_conservative_budget_at_warning(self):
        # 75 bytes in total, 64 of them in creeps
        store = creeps_store(64)
        assert make_monitor().get_budget('creeps', store) == 64
        assert make_monitor().get_budget('rooms', store) == pytest.approx(5.0)

    def test_frozen_budget_when_critical(self):
        store = creeps_store(84)
        assert make_monitor().get_budget('creeps', store) == 84
        assert make_monitor().get_budget('rooms', store) == 0


def test_format_bytes():
    assert format_bytes(512) == "512B"
    assert format_bytes(2048) == "2.0KB"
    assert format_bytes(2 * 1024 * 1024) == "2.00MB"
