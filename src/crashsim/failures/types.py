"""
Failure catalog and per-type payloads.

Each active failure carries exactly the payload its type needs; types with
no extra data carry NoPayload.
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Union

from ..core.severity import Severity
from ..propulsion.engine import EngineFailureType


class FailureType(str, Enum):
    ENGINE_FAILURE = 'engine_failure'
    HYDRAULIC_FAILURE = 'hydraulic_failure'
    PITOT_STATIC_FAILURE = 'pitot_static_failure'
    FUEL_LEAK = 'fuel_leak'
    CONTROL_JAM = 'control_jam'

    MINOR_INSTRUMENT = 'minor_instrument_failure'
    CIRCUIT_BREAKER = 'circuit_breaker_trip'
    SENSOR_ANOMALY = 'non_critical_sensor_anomaly'
    NAV_RADIO_GLITCH = 'navigation_radio_glitch'
    COMM_RADIO_FAILURE = 'communication_radio_failure'
    GEAR_EXTENSION_FAILURE = 'landing_gear_extension_issue'
    BRAKE_FAILURE = 'brake_failure'
    PARTIAL_ELECTRICAL = 'partial_electrical_failure'
    SINGLE_ENGINE_LOSS = 'single_engine_loss'
    SEVERE_ICING = 'severe_icing'
    TURBULENCE_ENCOUNTER = 'severe_turbulence'
    WIND_SHEAR = 'wind_shear'
    FUEL_CONTAMINATION = 'fuel_contamination'
    COMPRESSOR_STALL = 'compressor_stall'
    SPATIAL_DISORIENTATION = 'spatial_disorientation'
    AUTOPILOT_ANOMALY = 'autopilot_anomaly'
    AUTOTHROTTLE_MISCOMMAND = 'autothrottle_miscommand'
    BIRD_STRIKE = 'bird_strike'
    MAJOR_HYDRAULIC = 'major_hydraulic_failure'
    STRUCTURAL_JAM = 'structural_control_surface_jam'
    RUNWAY_EXCURSION = 'runway_excursion'
    SEVERE_WEATHER = 'severe_weather_convective'
    ELECTRICAL_BUS_FAILURE = 'electrical_bus_failure'
    DUAL_ENGINE_FAILURE = 'dual_engine_failure'
    RAPID_DEPRESSURIZATION = 'rapid_depressurization'
    TOTAL_CONTROL_FAILURE = 'total_flight_control_failure'
    UNCONTAINED_ENGINE = 'uncontained_engine_failure'
    HULL_BREACH = 'hull_breach'
    FIRE_ONBOARD = 'onboard_fire'
    SABOTAGE_EXPLOSION = 'sabotage_explosion'

    @property
    def display_name(self) -> str:
        return self.value.replace('_', ' ').upper()


# Failures that hit one engine (payload: engine index)
SINGLE_ENGINE_FAILURES = {
    FailureType.ENGINE_FAILURE: EngineFailureType.FLAMEOUT,
    FailureType.SINGLE_ENGINE_LOSS: EngineFailureType.FLAMEOUT,
    FailureType.COMPRESSOR_STALL: EngineFailureType.DAMAGE,
    FailureType.UNCONTAINED_ENGINE: EngineFailureType.SEIZURE,
    FailureType.FIRE_ONBOARD: EngineFailureType.FIRE,
    FailureType.BIRD_STRIKE: EngineFailureType.DAMAGE,
}

# Failures that hit every engine (payload: engine index -1)
ALL_ENGINE_FAILURES = {
    FailureType.DUAL_ENGINE_FAILURE: EngineFailureType.FLAMEOUT,
    FailureType.FUEL_CONTAMINATION: EngineFailureType.FLAMEOUT,
}

ENGINE_FAILURE_MAP = {**SINGLE_ENGINE_FAILURES, **ALL_ENGINE_FAILURES}

JAM_FAILURES = frozenset({FailureType.CONTROL_JAM, FailureType.STRUCTURAL_JAM})
HYDRAULIC_FAILURES = frozenset({FailureType.HYDRAULIC_FAILURE, FailureType.MAJOR_HYDRAULIC})
GENERATOR_FAILURES = frozenset({FailureType.PARTIAL_ELECTRICAL, FailureType.CIRCUIT_BREAKER})
SENSOR_BLOCKING_FAILURES = frozenset({FailureType.PITOT_STATIC_FAILURE, FailureType.SEVERE_ICING})
BREACH_FAILURES = frozenset({FailureType.RAPID_DEPRESSURIZATION, FailureType.HULL_BREACH})

CONTROL_SURFACES = ('elevator', 'aileron', 'rudder')
GEAR_UNITS = ('nose', 'main')

ALL_ENGINES = -1


@dataclass(frozen=True)
class NoPayload:
    pass


@dataclass(frozen=True)
class EnginePayload:
    engine_index: int  # ALL_ENGINES for fleet-wide failures


@dataclass(frozen=True)
class ControlJamPayload:
    surface: str
    stuck_value: float


@dataclass(frozen=True)
class GearPayload:
    gear: str


@dataclass(frozen=True)
class GeneratorPayload:
    generator: int  # zero-based engine generator number


FailurePayload = Union[NoPayload, EnginePayload, ControlJamPayload, GearPayload, GeneratorPayload]


def payload_class(failure_type: FailureType) -> type:
    """Payload variant a failure type carries."""
    if failure_type in ENGINE_FAILURE_MAP:
        return EnginePayload
    if failure_type in JAM_FAILURES:
        return ControlJamPayload
    if failure_type is FailureType.GEAR_EXTENSION_FAILURE:
        return GearPayload
    if failure_type in GENERATOR_FAILURES:
        return GeneratorPayload
    return NoPayload


@dataclass(frozen=True)
class ActiveFailure:
    type: FailureType
    severity: Severity
    start_time: float
    recovery_possible: bool = False
    payload: FailurePayload = NoPayload()

    def to_dict(self) -> dict:
        return {
            'type': self.type.value,
            'severity': self.severity.value,
            'start_time': self.start_time,
            'recovery_possible': self.recovery_possible,
            'payload': asdict(self.payload),
        }
