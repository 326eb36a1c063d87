"""
Engine and propulsion models.
"""

from .engine import (
    Engine,
    EngineFailureType,
    EngineSpec,
    EngineState,
    EnvironmentSnapshot,
    FailureRecord,
)
from .layouts import LAYOUTS, EngineLayout, EngineMount, get_layout
from .manager import PropulsionForces, PropulsionManager, PropulsionState

__all__ = [
    'Engine',
    'EngineFailureType',
    'EngineLayout',
    'EngineMount',
    'EngineSpec',
    'EngineState',
    'EnvironmentSnapshot',
    'FailureRecord',
    'LAYOUTS',
    'PropulsionForces',
    'PropulsionManager',
    'PropulsionState',
    'get_layout',
]
