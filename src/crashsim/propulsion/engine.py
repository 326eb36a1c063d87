"""
Single turbofan engine model with continuous degradation and failure modes.

Each call to calculate_parameters() computes target values for N1, N2, EGT,
thrust and fuel flow from either the normal operating curve or the active
failure curve, corrects them for the ambient temperature, then moves the
current values toward the targets with a first-order lag (spool inertia).

Smoothing constants are per reference tick (1/60 s); settling time is about
1/alpha reference ticks, e.g. ~67 ticks for N1.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import FrozenSet, Optional

import numpy as np

from ..core.numerics import clamp, finite_or, smoothing_factor
from ..core.severity import Severity
from ..core.units import RHO0
from ..core.vector import Vector3
from ..environment.atmosphere import StandardAtmosphere

logger = logging.getLogger(__name__)


class EngineFailureType(str, Enum):
    NONE = 'none'
    FLAMEOUT = 'flameout'
    FIRE = 'fire'
    DAMAGE = 'damage'
    FUEL_LEAK = 'fuel_leak'
    STUCK = 'stuck'
    SEPARATION = 'separation'
    SEIZURE = 'seizure'


AFFECTED_SYSTEMS = {
    EngineFailureType.FLAMEOUT: frozenset({'n1', 'egt', 'thrust', 'fuel'}),
    EngineFailureType.FIRE: frozenset({'n1', 'n2', 'egt', 'thrust'}),
    EngineFailureType.DAMAGE: frozenset({'n1', 'n2', 'egt', 'thrust', 'fuel'}),
    EngineFailureType.FUEL_LEAK: frozenset({'fuel', 'thrust'}),
    EngineFailureType.STUCK: frozenset({'throttle'}),
    EngineFailureType.SEPARATION: frozenset({'n1', 'n2', 'egt', 'thrust', 'fuel', 'oil'}),
    EngineFailureType.SEIZURE: frozenset({'n1', 'n2', 'egt', 'thrust', 'fuel', 'oil'}),
}

DAMAGE_SEVERITY_WEIGHT = {
    Severity.MINOR: 1.0,
    Severity.MAJOR: 0.6,
    Severity.CRITICAL: 0.3,
}

DAMAGE_VIBRATION = {
    Severity.MINOR: 1.5,
    Severity.MAJOR: 2.0,
    Severity.CRITICAL: 2.5,
}


@dataclass(frozen=True)
class FailureRecord:
    """Failure state of one engine. Replaced wholesale, never edited."""

    is_failed: bool = False
    failure_type: EngineFailureType = EngineFailureType.NONE
    severity: Optional[Severity] = None
    affected_systems: FrozenSet[str] = frozenset()
    time_of_failure: Optional[float] = None
    recovery_possible: bool = False


@dataclass(frozen=True)
class EnvironmentSnapshot:
    altitude: float = 0.0         # m
    air_density: float = RHO0     # kg/m³
    temperature: float = 15.0     # °C
    humidity: float = 0.5         # 0-1
    true_airspeed: float = 0.0    # m/s


@dataclass(frozen=True)
class EngineState:
    """Read-only snapshot of one engine after an update."""

    index: int
    engine_type: str
    throttle_command: float
    throttle_magnitude: float
    n1: float
    n2: float
    egt: float
    thrust: float
    fuel_flow: float
    oil_pressure: float
    vibration: float
    running: bool
    failure: FailureRecord
    environment: EnvironmentSnapshot

    @property
    def is_failed(self) -> bool:
        return self.failure.is_failed


@dataclass
class EngineSpec:
    """
    Static engine parameters.

    Attributes
    ----------
    max_thrust : float
        Rated sea-level static thrust (N)
    sfc : float
        Specific fuel consumption (kg/N/s)
    """

    engine_type: str = 'turbofan'
    max_thrust: float = 85000.0
    sfc: float = 1.7e-5
    idle_fuel_flow: float = 0.05
    n1_idle: float = 22.0
    n1_max: float = 100.0
    n2_base: float = 85.0
    egt_idle: float = 550.0
    egt_max: float = 900.0
    vibration_amplitude: float = 0.5


@dataclass
class _Targets:
    n1: float
    n2: float
    egt: float
    thrust: float
    fuel_flow: float


class Engine:
    """
    One physical engine.

    Parameters
    ----------
    index : int
        Position of the engine in the airframe (0 = leftmost)
    spec : EngineSpec, optional
        Static parameters
    position : Vector3, optional
        Mounting position relative to the CG, body frame (m)
    rng : numpy.random.Generator, optional
        Source for oil-pressure noise, windmill speed and leak escalation
    """

    THROTTLE_MIN = -0.7
    THROTTLE_MAX = 1.0
    REFERENCE_DT = 1.0 / 60.0

    ALPHA_N1 = 0.015
    ALPHA_N2 = 0.012
    ALPHA_EGT = 0.010
    ALPHA_THRUST = 0.020
    ALPHA_FUEL = 0.020

    EGT_DEADBAND = 0.05
    RUNNING_N1 = 5.0
    OIL_N1_THRESHOLD = 5.0
    VIBRATION_CAP = 5.0
    FUEL_LEAK_ESCALATION = 0.1
    TEMPERATURE_SENSITIVITY = 0.004

    def __init__(self, index: int, spec: EngineSpec = None,
                 position: Vector3 = None, rng: np.random.Generator = None):
        self.index = index
        self.spec = spec or EngineSpec()
        self.position = position or Vector3()
        self.rng = rng if rng is not None else np.random.default_rng()

        self._throttle_command = 0.0
        self._throttle_magnitude = 0.0

        self._n1 = self.spec.n1_idle
        self._n2 = self.spec.n2_base
        self._egt = self.spec.egt_idle
        self._thrust = 0.0
        self._fuel_flow = self.spec.idle_fuel_flow
        self._oil_pressure = 0.0
        self._vibration = 0.0
        self._running = True

        self._failure = FailureRecord()
        self._environment = EnvironmentSnapshot()
        self._time = 0.0

        self._update_derived()

    # ------------------------------------------------------------------
    # Controls and environment
    # ------------------------------------------------------------------

    def set_throttle(self, value: float):
        """
        Set the throttle lever, negative values select reverse thrust.

        Out-of-range input is clamped to [-0.7, 1.0]; non-finite input is ignored.
        """
        value = finite_or(value, self._throttle_command)
        command = clamp(value, self.THROTTLE_MIN, self.THROTTLE_MAX)
        self._throttle_command = command
        self._throttle_magnitude = abs(command)
        logger.debug("Engine %d throttle set to %.3f", self.index, command)

    def update_environment(self, altitude: float, air_density: float, temperature: float,
                           humidity: float, true_airspeed: float = 0.0, recompute: bool = True):
        """
        Replace the environment snapshot.

        Parameters
        ----------
        altitude : float
            Altitude MSL (m)
        air_density : float
            Air density (kg/m³)
        temperature : float
            Outside air temperature (°C)
        humidity : float
            Relative humidity 0-1
        true_airspeed : float
            True airspeed (m/s)
        recompute : bool
            Recompute parameters immediately when running. The tick loop
            passes False since it calls calculate_parameters() itself.
        """
        density = finite_or(air_density, RHO0)
        self._environment = EnvironmentSnapshot(
            altitude=max(0.0, finite_or(altitude, 0.0)),
            air_density=density if density > 0.0 else RHO0,
            temperature=finite_or(temperature, 15.0),
            humidity=clamp(finite_or(humidity, 0.5), 0.0, 1.0),
            true_airspeed=max(0.0, finite_or(true_airspeed, 0.0)),
        )

        if recompute and self._running:
            self.calculate_parameters(self.REFERENCE_DT)

    # ------------------------------------------------------------------
    # Core step
    # ------------------------------------------------------------------

    def calculate_parameters(self, dt: float = REFERENCE_DT) -> EngineState:
        """
        Advance the engine by one step.

        Parameters
        ----------
        dt : float
            Time step (s); smoothing is rescaled from the 1/60 s reference

        Returns
        -------
        EngineState
        """
        dt = max(0.0, finite_or(dt, 0.0))
        self._time = finite_or(self._time + dt, self._time)

        if self._failure.failure_type is not EngineFailureType.STUCK:
            if self._failure.is_failed:
                targets = self._failed_targets()
            else:
                targets = self._normal_targets(self._throttle_magnitude, self._thrust_direction())

            if self._failure.failure_type not in (EngineFailureType.SEPARATION,
                                                  EngineFailureType.SEIZURE):
                targets = self._apply_environment(targets)

            self._smooth_towards(targets, dt)

        self._update_derived()
        return self.state

    def _thrust_direction(self) -> float:
        return -1.0 if self._throttle_command < 0.0 else 1.0

    def _normal_targets(self, throttle: float, direction: float) -> _Targets:
        """Normal operating curve at throttle magnitude `throttle`."""
        spec = self.spec
        env = self._environment
        altitude = env.altitude

        n1_sl = spec.n1_idle + throttle**0.7 * (spec.n1_max - spec.n1_idle)
        n1 = clamp(n1_sl * np.exp(-2e-5 * altitude), spec.n1_idle, spec.n1_max)

        n2_sl = spec.n2_base + throttle**0.9 * 10.0
        n2 = clamp(n2_sl * (1.0 - 0.3 * (1.0 - np.exp(-1e-5 * altitude))), 50.0, 100.0)

        if throttle <= self.EGT_DEADBAND:
            egt = spec.egt_idle
        else:
            egt = spec.egt_idle + throttle**0.8 * (spec.egt_max - spec.egt_idle)

        density_ratio = max(0.0, env.air_density / RHO0)
        speed_of_sound = np.sqrt(1.4 * 287.05 * max(1.0, env.temperature + 273.15))
        mach = env.true_airspeed / speed_of_sound
        thrust = (spec.max_thrust * throttle * density_ratio**0.7
                  * max(0.0, 1.0 - 0.15 * mach) * direction)

        fuel_flow = max(spec.idle_fuel_flow, spec.sfc * abs(thrust))

        return _Targets(n1, n2, egt, thrust, fuel_flow)

    def _failed_targets(self) -> _Targets:
        """Failure curve for the active failure type."""
        failure_type = self._failure.failure_type

        if failure_type is EngineFailureType.FUEL_LEAK and \
                self.rng.random() < self.FUEL_LEAK_ESCALATION:
            logger.info("Engine %d fuel leak escalated to flameout", self.index)
            self._set_failure(EngineFailureType.FLAMEOUT, Severity.MAJOR, True)
            failure_type = EngineFailureType.FLAMEOUT

        if failure_type is EngineFailureType.FLAMEOUT:
            # No combustion: the lever has no effect, baseline is idle
            base = self._normal_targets(0.0, 1.0)
            return _Targets(
                n1=base.n1 * 0.1,
                n2=self.rng.uniform(15.0, 20.0),
                egt=max(100.0, base.egt * 0.3),
                thrust=base.thrust * 0.05,
                fuel_flow=base.fuel_flow * 0.1,
            )

        if failure_type in (EngineFailureType.SEPARATION, EngineFailureType.SEIZURE):
            return _Targets(0.0, 0.0, self._environment.temperature, 0.0, 0.0)

        base = self._normal_targets(self._throttle_magnitude, self._thrust_direction())

        if failure_type is EngineFailureType.FIRE:
            return _Targets(
                n1=base.n1 * 0.5,
                n2=base.n2 * 0.5,
                egt=min(1400.0, base.egt * 1.8),
                thrust=base.thrust * 0.4,
                fuel_flow=base.fuel_flow,
            )

        if failure_type is EngineFailureType.DAMAGE:
            factor = 0.5 + 0.3 * DAMAGE_SEVERITY_WEIGHT.get(self._failure.severity, 0.6)
            return _Targets(
                n1=base.n1 * factor,
                n2=base.n2 * factor,
                egt=base.egt * (factor + 0.2),
                thrust=base.thrust * factor,
                fuel_flow=base.fuel_flow * factor,
            )

        if failure_type is EngineFailureType.FUEL_LEAK:
            return replace(base, fuel_flow=base.fuel_flow * 0.7)

        return base

    def _apply_environment(self, targets: _Targets) -> _Targets:
        """Hot day: EGT and fuel flow up, thrust down, by ISA temperature deviation."""
        env = self._environment
        delta_t = env.temperature - StandardAtmosphere.isa_temperature_celsius(env.altitude)
        k = self.TEMPERATURE_SENSITIVITY * delta_t

        heat_factor = clamp(1.0 + k, 0.6, 1.4)
        thrust_factor = clamp(1.0 - k, 0.6, 1.4)

        return replace(
            targets,
            egt=targets.egt * heat_factor,
            thrust=targets.thrust * thrust_factor,
            fuel_flow=targets.fuel_flow * heat_factor,
        )

    def _smooth_towards(self, targets: _Targets, dt: float):
        ref = self.REFERENCE_DT

        def lag(current, target, alpha):
            target = finite_or(target, current)
            value = current + (target - current) * smoothing_factor(alpha, dt, ref)
            return finite_or(value, current)

        self._n1 = max(0.0, lag(self._n1, targets.n1, self.ALPHA_N1))
        self._n2 = max(0.0, lag(self._n2, targets.n2, self.ALPHA_N2))
        self._egt = lag(self._egt, targets.egt, self.ALPHA_EGT)
        self._thrust = lag(self._thrust, targets.thrust, self.ALPHA_THRUST)
        self._fuel_flow = max(0.0, lag(self._fuel_flow, targets.fuel_flow, self.ALPHA_FUEL))

    def _update_derived(self):
        self._oil_pressure = finite_or(self._calculate_oil_pressure(), 0.0)
        self._vibration = finite_or(self._calculate_vibration(), 0.0)
        self._running = self._calculate_running_state()

    def _calculate_oil_pressure(self) -> float:
        if self._n1 < self.OIL_N1_THRESHOLD:
            return 0.0
        return min(100.0, (self._n1 / 100.0) * 80.0 + self.rng.random() * 10.0)

    def _calculate_vibration(self) -> float:
        vibration = self.spec.vibration_amplitude * (0.5 + self._throttle_magnitude * 0.5)

        failure = self._failure
        if failure.is_failed:
            if failure.failure_type is EngineFailureType.FIRE:
                vibration *= 2.0
            elif failure.failure_type is EngineFailureType.DAMAGE:
                vibration *= DAMAGE_VIBRATION.get(failure.severity, 2.0)
            elif failure.failure_type is EngineFailureType.FUEL_LEAK:
                vibration *= 1.3

        return min(self.VIBRATION_CAP, vibration)

    def _calculate_running_state(self) -> bool:
        if self._failure.failure_type is EngineFailureType.FLAMEOUT:
            return False
        return self._n1 > self.RUNNING_N1

    # ------------------------------------------------------------------
    # Failures
    # ------------------------------------------------------------------

    def _set_failure(self, failure_type: EngineFailureType, severity: Severity,
                     recovery_possible: bool):
        self._failure = FailureRecord(
            is_failed=True,
            failure_type=failure_type,
            severity=severity,
            affected_systems=AFFECTED_SYSTEMS.get(failure_type, frozenset()),
            time_of_failure=self._time,
            recovery_possible=recovery_possible,
        )

    def trigger_failure(self, failure_type: EngineFailureType,
                        severity: Severity = Severity.MAJOR,
                        recovery_possible: bool = False):
        """
        Replace the failure record and recompute immediately.

        Parameters
        ----------
        failure_type : EngineFailureType
        severity : Severity
        recovery_possible : bool
            Whether recover_from_failure() may clear this failure later
        """
        failure_type = EngineFailureType(failure_type)
        if failure_type is EngineFailureType.NONE:
            return

        self._set_failure(failure_type, Severity(severity), recovery_possible)
        self.calculate_parameters(self.REFERENCE_DT)

        logger.info("Engine %d failure: %s (%s, recoverable=%s)",
                    self.index, failure_type.value, Severity(severity).value, recovery_possible)

    def recover_from_failure(self) -> bool:
        """Clear a recoverable failure. Returns True when the failure was cleared."""
        if not self._failure.is_failed or not self._failure.recovery_possible:
            return False

        self._failure = FailureRecord()
        self.calculate_parameters(self.REFERENCE_DT)
        logger.info("Engine %d recovered", self.index)
        return True

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def failure(self) -> FailureRecord:
        return self._failure

    @property
    def is_failed(self) -> bool:
        return self._failure.is_failed

    @property
    def running(self) -> bool:
        return self._running

    @property
    def throttle(self) -> float:
        return self._throttle_command

    @property
    def n1(self) -> float:
        return self._n1

    @property
    def thrust(self) -> float:
        return self._thrust

    @property
    def environment(self) -> EnvironmentSnapshot:
        return self._environment

    @property
    def state(self) -> EngineState:
        return EngineState(
            index=self.index,
            engine_type=self.spec.engine_type,
            throttle_command=self._throttle_command,
            throttle_magnitude=self._throttle_magnitude,
            n1=self._n1,
            n2=self._n2,
            egt=self._egt,
            thrust=self._thrust,
            fuel_flow=self._fuel_flow,
            oil_pressure=self._oil_pressure,
            vibration=self._vibration,
            running=self._running,
            failure=self._failure,
            environment=self._environment,
        )

    def __repr__(self) -> str:
        return (f"Engine({self.index}, N1={self._n1:.1f}%, thrust={self._thrust:.0f} N, "
                f"running={self._running}, failure={self._failure.failure_type.value})")
