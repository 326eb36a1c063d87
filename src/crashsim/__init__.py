"""
crashsim: flight dynamics, propulsion and failure simulation for
aircraft-crash training.
"""

from .exceptions import (
    ConfigurationError,
    CrashSimError,
    InvalidControlSurfaceError,
    InvalidEngineIndexError,
)
from .failures import FailureSystem, FailureType
from .io import AirframeConfig, load_airframe, load_airframe_config
from .propulsion import Engine, EngineFailureType, PropulsionManager
from .simulation import Aircraft, ControlInput, FlightSimulator, FlightSnapshot
from .warnings import WarningLevel, WarningSystem

__version__ = '0.1.0'

__all__ = [
    'Aircraft',
    'AirframeConfig',
    'ConfigurationError',
    'ControlInput',
    'CrashSimError',
    'Engine',
    'EngineFailureType',
    'FailureSystem',
    'FailureType',
    'FlightSimulator',
    'FlightSnapshot',
    'InvalidControlSurfaceError',
    'InvalidEngineIndexError',
    'PropulsionManager',
    'WarningLevel',
    'WarningSystem',
    'load_airframe',
    'load_airframe_config',
]
