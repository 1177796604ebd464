"""
Error types for the tickpy execution core.

Nothing in the cycle path raises these to the host: they surface at
registration time (static wiring mistakes) or at the host entry boundary.
"""


class TickpyError(Exception):
    """Base error for tickpy."""


class RegistrationError(TickpyError):
    """Raised when a phase, process or migration cannot be registered."""


class HostContextError(TickpyError):
    """Raised when the host-supplied cycle context is malformed."""


class StoreValidationError(TickpyError):
    """Raised when a typed view cannot be read from the durable store."""

    def __init__(self, slot: str, message: str):
        self.slot = slot
        super().__init__(f"{slot}: {message}")


class MigrationError(TickpyError):
    """Raised inside a migration run when a step's handler fails."""

    def __init__(self, version: int, error: Exception):
        self.version = version
        super().__init__(f"Failed to apply migration v{version}: {error}")
