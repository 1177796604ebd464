"""
Process registry for the kernel.

Processes register once, at static registration time, with a name, a
priority (higher runs first) and something to run. The registry keeps them
sorted; processes with equal priority keep their registration order.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..core.errors import RegistrationError


@dataclass(frozen=True)
class ProcessDescriptor:
    """
    A registered process.

    ``target`` is either a callable taking a ProcessContext, or a class whose
    instances expose ``run(context)``. Classes are instantiated fresh every
    cycle so no in-process state leaks between cycles.
    """
    name: str
    priority: int
    target: Any
    requires_init: bool = False

    def resolve(self) -> Callable[[Any], Any]:
        """Return the callable to invoke for this cycle."""
        if inspect.isclass(self.target):
            return self.target().run
        return self.target


class ProcessRegistry:
    """Ordered collection of processes for one kernel."""

    def __init__(self):
        self._processes: List[ProcessDescriptor] = []

    def register(self, name: str, priority: int, run: Any, requires_init: bool = False) -> ProcessDescriptor:
        """
        Register a process.

        Raises:
            RegistrationError: name already taken, or target not runnable
        """
        if not name:
            raise RegistrationError("Process name must not be empty")
        if any(p.name == name for p in self._processes):
            raise RegistrationError(f"Process '{name}' is already registered")
        if inspect.isclass(run):
            if not callable(getattr(run, 'run', None)):
                raise RegistrationError(f"Process class for '{name}' has no run() method")
        elif not callable(run):
            raise RegistrationError(f"Process '{name}' is not callable")

        descriptor = ProcessDescriptor(name=name, priority=priority, target=run, requires_init=requires_init)
        self._processes.append(descriptor)
        # sort() is stable, ties keep registration order
        self._processes.sort(key=lambda p: -p.priority)
        return descriptor

    def process(self, name: Optional[str] = None, priority: int = 50, requires_init: bool = False):
        """
        Decorator form of register().

        Usage:
            @registry.process(name="defense", priority=90)
            def defend(context): ...
        """
        def decorator(target):
            self.register(name or getattr(target, '__name__', repr(target)), priority, target,
                          requires_init=requires_init)
            return target
        return decorator

    def unregister(self, name: str) -> bool:
        before = len(self._processes)
        self._processes = [p for p in self._processes if p.name != name]
        return len(self._processes) != before

    def get(self, name: str) -> Optional[ProcessDescriptor]:
        for descriptor in self._processes:
            if descriptor.name == name:
                return descriptor
        return None

    def get_all(self) -> List[ProcessDescriptor]:
        return list(self._processes)

    def names(self) -> List[str]:
        return [p.name for p in self._processes]

    def size(self) -> int:
        return len(self._processes)

    def clear(self) -> None:
        self._processes = []

    def to_dict(self) -> List[Dict[str, Any]]:
        return [
            {'name': p.name, 'priority': p.priority, 'requires_init': p.requires_init}
            for p in self._processes
        ]

    def __len__(self) -> int:
        return len(self._processes)
