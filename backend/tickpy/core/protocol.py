"""
Invocation-Scoped Protocol for tickpy
Provides an in-memory fact channel shared by processes within one cycle
Facts are keyed by name and can be queried with glob-style wildcard patterns

A protocol instance is created by the kernel at the start of every cycle
and dropped at the end of it; nothing written here reaches the durable store.
"""

import fnmatch
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

ROLE_COUNTS = 'role_counts'
EMERGENCY_RESET = 'emergency_reset'
INIT_COMPLETE = 'init.complete'
INIT_RESULT = 'init.result'
BOOTSTRAP_ACTIVE = 'bootstrap.active'
BOOTSTRAP_ROLE_MINIMUMS = 'bootstrap.role_minimums'
MEMORY_UTILIZATION = 'memory.utilization'


@dataclass
class Fact:
    """A named value published by a process during the current cycle"""
    name: str
    value: Any = None
    sender: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        """Convert fact to dictionary for diagnostics"""
        return {
            'name': self.name,
            'value': self.value,
            'sender': self.sender,
            'timestamp': self.timestamp
        }


class CycleProtocol:
    """
    Transient key/value channel for one cycle.

    Processes publish computed facts (role counts, summaries, flags) so later
    processes in the same cycle do not recompute them or touch the store.
    """

    def __init__(self, tick: Optional[int] = None):
        self.tick = tick
        self._facts: Dict[str, Fact] = {}
        self._inbox: Dict[str, List[str]] = defaultdict(list)

    def set_fact(self, name: str, value: Any, sender: Optional[str] = None) -> Fact:
        """Publish (or overwrite) a fact"""
        fact = Fact(name=name, value=value, sender=sender)
        self._facts[name] = fact
        return fact

    def get_fact(self, name: str, default: Any = None) -> Any:
        fact = self._facts.get(name)
        return fact.value if fact is not None else default

    def has_fact(self, name: str) -> bool:
        return name in self._facts

    def remove_fact(self, name: str) -> bool:
        return self._facts.pop(name, None) is not None

    def facts_matching(self, pattern: str) -> Dict[str, Any]:
        """Return the values of all facts whose name matches a glob pattern"""
        return {
            name: fact.value
            for name, fact in self._facts.items()
            if fnmatch.fnmatch(name, pattern)
        }

    def set_role_counts(self, counts: Dict[str, int], sender: Optional[str] = None) -> None:
        self.set_fact(ROLE_COUNTS, dict(counts), sender=sender)

    def get_role_counts(self) -> Dict[str, int]:
        return dict(self.get_fact(ROLE_COUNTS, {}) or {})

    def set_emergency_reset(self, flag: bool, sender: Optional[str] = None) -> None:
        self.set_fact(EMERGENCY_RESET, bool(flag), sender=sender)

    def is_emergency_reset(self) -> bool:
        return bool(self.get_fact(EMERGENCY_RESET, False))

    def set_memory_utilization(self, utilization: Dict[str, Any], sender: Optional[str] = None) -> None:
        self.set_fact(MEMORY_UTILIZATION, dict(utilization), sender=sender)

    def get_memory_utilization(self) -> Optional[Dict[str, Any]]:
        return self.get_fact(MEMORY_UTILIZATION)

    def send_message(self, target: str, message: str) -> None:
        """Queue a message for another process, read later in the same cycle"""
        self._inbox[target].append(message)

    def get_messages(self, target: str) -> List[str]:
        return list(self._inbox.get(target, []))

    def clear_messages(self, target: str) -> None:
        self._inbox.pop(target, None)

    def snapshot(self) -> Dict[str, Any]:
        """Everything published so far, for logging and inspection"""
        return {
            'tick': self.tick,
            'facts': {name: fact.to_dict() for name, fact in self._facts.items()},
            'messages': {target: list(messages) for target, messages in self._inbox.items() if messages},
        }

    def __len__(self) -> int:
        return len(self._facts)
