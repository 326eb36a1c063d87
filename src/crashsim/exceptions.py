"""
Error taxonomy for the simulation core.

Caller bugs (bad indices, bad configuration) fail fast with these errors.
Simulated failures are never errors and never raise.
"""


class CrashSimError(Exception):
    """Base class for all simulator errors."""


class InvalidEngineIndexError(CrashSimError, IndexError):
    """Engine index outside the installed engine range."""

    def __init__(self, index: int, engine_count: int):
        self.index = index
        self.engine_count = engine_count
        super().__init__(f"Invalid engine index: {index} (engines installed: {engine_count})")


class InvalidControlSurfaceError(CrashSimError, ValueError):
    """Unknown control surface name."""


class ConfigurationError(CrashSimError, ValueError):
    """Airframe or simulation configuration is inconsistent."""
