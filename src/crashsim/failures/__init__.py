from .events import CriticalMessage, EventRecorder, FailureOccurred
from .policy import DIFFICULTY_SETTINGS, DifficultySettings, get_difficulty_settings
from .system import FailureContext, FailureSystem
from .types import (
    ActiveFailure,
    ControlJamPayload,
    EnginePayload,
    FailureType,
    GearPayload,
    GeneratorPayload,
    NoPayload,
)

__all__ = [
    'ActiveFailure',
    'ControlJamPayload',
    'CriticalMessage',
    'DIFFICULTY_SETTINGS',
    'DifficultySettings',
    'EnginePayload',
    'EventRecorder',
    'FailureContext',
    'FailureOccurred',
    'FailureSystem',
    'FailureType',
    'GearPayload',
    'GeneratorPayload',
    'NoPayload',
    'get_difficulty_settings',
]
