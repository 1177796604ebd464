"""
Global pytest configuration and fixtures for tickpy tests
"""

import os
import sys

import pytest

# Add the backend directory to the path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from tickpy.core.context import HostContext, RoomSnapshot, SimulatedCpu
from tickpy.memory.schema import CURRENT_SCHEMA_VERSION, default_store


class RecordingSink:
    """Console-style sink that keeps every line it receives."""

    def __init__(self):
        self.logs = []
        self.warnings = []

    def log(self, message):
        self.logs.append(message)

    def warn(self, message):
        self.warnings.append(message)

    @property
    def lines(self):
        return self.logs + self.warnings


def make_host(time=100, limit=20.0, bucket=10000.0, used=0.0, rooms=None, creeps=None):
    """Build a HostContext backed by a SimulatedCpu."""
    return HostContext(
        time=time,
        cpu=SimulatedCpu(limit=limit, bucket=bucket, used=used),
        rooms=rooms or {},
        creeps=creeps,
    )


def make_store(**slots):
    """A healthy store at the current schema version, with extra slots merged in."""
    store = default_store(CURRENT_SCHEMA_VERSION)
    store.update(slots)
    return store


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def host():
    return make_host()


@pytest.fixture
def store():
    return make_store()


@pytest.fixture
def owned_room():
    return RoomSnapshot(name='W1N1', my=True, controller_level=1, energy_available=200)


@pytest.fixture(autouse=True)
def isolate_tickpy_environment(monkeypatch):
    """Keep developer TICKPY_* variables out of the tests."""
    for key in list(os.environ):
        if key.startswith('TICKPY_'):
            monkeypatch.delenv(key, raising=False)
    yield
