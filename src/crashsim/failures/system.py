"""
Failure injection and impact.

The failure system decides when failures happen (a forced failure scheduled
at session start, plus an optional periodic random check scaled by
difficulty) and applies every active failure onto the aircraft each tick,
after propulsion has been updated and before the rigid body is integrated.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

import numpy as np

from ..core.numerics import clamp, finite_or
from ..core.severity import Severity
from ..exceptions import ConfigurationError, InvalidControlSurfaceError, InvalidEngineIndexError
from .events import CriticalMessage, EventSink, FailureOccurred, null_sink
from .policy import DifficultySettings, get_difficulty_settings
from .types import (
    ALL_ENGINE_FAILURES,
    ALL_ENGINES,
    BREACH_FAILURES,
    CONTROL_SURFACES,
    ENGINE_FAILURE_MAP,
    GEAR_UNITS,
    GENERATOR_FAILURES,
    HYDRAULIC_FAILURES,
    JAM_FAILURES,
    SENSOR_BLOCKING_FAILURES,
    SINGLE_ENGINE_FAILURES,
    ActiveFailure,
    ControlJamPayload,
    EnginePayload,
    FailurePayload,
    FailureType,
    GearPayload,
    GeneratorPayload,
    NoPayload,
    payload_class,
)

logger = logging.getLogger(__name__)

NO_FORCED_FAILURE = ('random', 'none', '')


@dataclass(frozen=True)
class FailureContext:
    """Flight conditions the trigger logic looks at."""

    temperature_k: float = 288.15
    throttle: float = 0.0
    engine_count: int = 2


@dataclass(frozen=True)
class PendingFailure:
    type: FailureType
    trigger_time: float


class FailureSystem:
    """
    Difficulty-driven failure scheduler and impact applier.

    Parameters
    ----------
    difficulty : str
        rookie, amateur, intermediate, advanced, pro or devil
    forced_failure : FailureType or str, optional
        Failure to inject once, 30-90 s into the session. 'random' or 'none'
        schedule nothing.
    rng : numpy.random.Generator, optional
    sink : callable, optional
        Receives FailureOccurred and CriticalMessage events
    random_checks_enabled : bool
        Run the periodic random failure check. Off by default.
    """

    BASE_PROBABILITY = 0.005
    CRITICAL_PROBABILITY = 0.3
    COLD_PITOT_LIMIT_K = 275.0
    HIGH_THROTTLE = 0.9

    FORCED_DELAY = (30.0, 60.0)      # start, jitter (s)
    CHECK_INTERVAL = (5.0, 5.0)      # base, jitter (s)

    JAM_OFFSET_RANGE = 0.2
    HYDRAULIC_LIMIT = {Severity.CRITICAL: 0.2}
    HYDRAULIC_LIMIT_DEFAULT = 0.5
    FUEL_LEAK_RATE = {Severity.CRITICAL: 5.0}    # kg/s
    FUEL_LEAK_RATE_DEFAULT = 1.0
    AUTOPILOT_DISENGAGE_PROBABILITY = 0.05

    def __init__(self, difficulty: str = 'intermediate',
                 forced_failure: Union[FailureType, str, None] = None,
                 rng: np.random.Generator = None, sink: EventSink = None,
                 random_checks_enabled: bool = False):
        self.difficulty = difficulty
        self.settings: DifficultySettings = get_difficulty_settings(difficulty)
        self.rng = rng if rng is not None else np.random.default_rng()
        self.sink = sink or null_sink
        self.random_checks_enabled = random_checks_enabled

        if forced_failure is None or (isinstance(forced_failure, str)
                                      and forced_failure.lower() in NO_FORCED_FAILURE):
            self.forced_failure_type = None
        else:
            try:
                self.forced_failure_type = FailureType(forced_failure)
            except ValueError:
                raise ConfigurationError(f"Unknown failure type: {forced_failure}") from None

        self._active: Dict[FailureType, ActiveFailure] = {}
        self._engine_impacts_applied = set()
        self.time = 0.0
        self.next_check_time = self.CHECK_INTERVAL[0]
        self.pending: Optional[PendingFailure] = None

        if self.forced_failure_type is not None:
            self._schedule_forced_failure()

    def _schedule_forced_failure(self):
        start, jitter = self.FORCED_DELAY
        self.pending = PendingFailure(self.forced_failure_type,
                                      start + float(self.rng.random()) * jitter)
        logger.debug("Forced failure %s scheduled at t=%.1f s",
                     self.pending.type.value, self.pending.trigger_time)

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    @property
    def active_failures(self) -> Tuple[ActiveFailure, ...]:
        return tuple(self._active.values())

    def is_active(self, failure_type: FailureType) -> bool:
        return FailureType(failure_type) in self._active

    def get(self, failure_type: FailureType) -> Optional[ActiveFailure]:
        return self._active.get(FailureType(failure_type))

    def clear_failure(self, failure_type: FailureType) -> bool:
        """Remove an active failure. Returns False when it was not active."""
        failure_type = FailureType(failure_type)
        removed = self._active.pop(failure_type, None)
        self._engine_impacts_applied.discard(failure_type)
        if removed is not None:
            logger.info("Failure cleared: %s", failure_type.value)
        return removed is not None

    def reset(self):
        """Clear every failure, rewind time and re-arm the forced failure."""
        self._active.clear()
        self._engine_impacts_applied.clear()
        self.time = 0.0
        self.next_check_time = self.CHECK_INTERVAL[0]
        self.pending = None
        if self.forced_failure_type is not None:
            self._schedule_forced_failure()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def update(self, dt: float, context: FailureContext = None):
        """
        Advance simulation time and run the trigger paths.

        Parameters
        ----------
        dt : float
            Time step (s); paused simulations pass 0
        context : FailureContext, optional
        """
        context = context or FailureContext()
        self.time += max(0.0, finite_or(dt, 0.0))

        if self.pending is not None and self.time > self.pending.trigger_time:
            pending, self.pending = self.pending, None
            self.trigger_failure(pending.type, context)

        if self.time > self.next_check_time:
            if self.random_checks_enabled:
                self.check_random_failures(context)
            base, jitter = self.CHECK_INTERVAL
            self.next_check_time = self.time + base + float(self.rng.random()) * jitter

    def check_random_failures(self, context: FailureContext = None) -> Optional[ActiveFailure]:
        """
        One random draw: maybe trigger a failure from the full catalog.

        Returns
        -------
        ActiveFailure or None
            The failure triggered by this check, if any
        """
        context = context or FailureContext()

        if len(self._active) >= self.settings.max_failures:
            return None

        probability = self.BASE_PROBABILITY * self.settings.probability_multiplier
        if self.rng.random() > probability:
            return None

        catalog = list(FailureType)
        failure_type = catalog[self.rng.integers(len(catalog))]

        if failure_type is FailureType.PITOT_STATIC_FAILURE:
            if context.temperature_k > self.COLD_PITOT_LIMIT_K:
                return None

        if failure_type is FailureType.ENGINE_FAILURE:
            high_stress = context.throttle > self.HIGH_THROTTLE and self.rng.random() < 0.5
            if not high_stress and self.rng.random() > 0.2:
                return None

        return self.trigger_failure(failure_type, context)

    def trigger_failure(self, failure_type: FailureType, context: FailureContext = None,
                        payload: FailurePayload = None) -> Optional[ActiveFailure]:
        """
        Activate a failure. Re-triggering an active type does nothing.

        Parameters
        ----------
        failure_type : FailureType
        context : FailureContext, optional
            Used to pick the affected engine or generator
        payload : optional
            Explicit payload instead of a random one

        Returns
        -------
        ActiveFailure or None
            None when the type was already active

        Raises
        ------
        TypeError
            If the payload is not the variant the failure type carries
        InvalidEngineIndexError
            If an engine or generator index is outside the installed engines
        InvalidControlSurfaceError
            If a jam names an unknown surface
        """
        failure_type = FailureType(failure_type)
        if failure_type in self._active:
            return None

        context = context or FailureContext()
        if payload is not None:
            self._validate_payload(failure_type, payload, context)

        severity = Severity.CRITICAL if self.rng.random() < self.CRITICAL_PROBABILITY else Severity.MAJOR
        recovery_possible = bool(self.rng.random() < self.settings.recovery_chance)

        if payload is None:
            payload = self._build_payload(failure_type, context)

        failure = ActiveFailure(
            type=failure_type,
            severity=severity,
            start_time=self.time,
            recovery_possible=recovery_possible,
            payload=payload,
        )
        self._active[failure_type] = failure

        logger.warning("Failure triggered: %s (%s) %s", failure_type.value, severity.value, payload)

        self.sink(FailureOccurred(failure_type, severity, payload))
        self.sink(CriticalMessage(
            title='SYSTEM FAILURE',
            content=f"WARNING: {failure_type.display_name} DETECTED.",
        ))

        return failure

    @staticmethod
    def _validate_payload(failure_type: FailureType, payload, context: FailureContext):
        expected = payload_class(failure_type)
        if not isinstance(payload, expected):
            raise TypeError(f"{failure_type.value} expects {expected.__name__}, "
                            f"got {type(payload).__name__}")

        engine_count = max(1, int(context.engine_count))
        if isinstance(payload, EnginePayload):
            index = payload.engine_index
            if index != ALL_ENGINES and not 0 <= index < engine_count:
                raise InvalidEngineIndexError(index, engine_count)
        elif isinstance(payload, GeneratorPayload):
            if not 0 <= payload.generator < engine_count:
                raise InvalidEngineIndexError(payload.generator, engine_count)
        elif isinstance(payload, ControlJamPayload):
            if payload.surface not in CONTROL_SURFACES:
                raise InvalidControlSurfaceError(f"Unknown control surface: {payload.surface}")
        elif isinstance(payload, GearPayload):
            if payload.gear not in GEAR_UNITS:
                raise ConfigurationError(f"Unknown gear unit: {payload.gear}")

    def _build_payload(self, failure_type: FailureType, context: FailureContext) -> FailurePayload:
        rng = self.rng
        engine_count = max(1, int(context.engine_count))

        if failure_type in SINGLE_ENGINE_FAILURES:
            return EnginePayload(int(rng.integers(engine_count)))
        if failure_type in ALL_ENGINE_FAILURES:
            return EnginePayload(ALL_ENGINES)
        if failure_type in JAM_FAILURES:
            surface = CONTROL_SURFACES[rng.integers(len(CONTROL_SURFACES))]
            offset = float(rng.random()) * 2.0 * self.JAM_OFFSET_RANGE - self.JAM_OFFSET_RANGE
            return ControlJamPayload(surface, offset)
        if failure_type is FailureType.GEAR_EXTENSION_FAILURE:
            return GearPayload(GEAR_UNITS[rng.integers(len(GEAR_UNITS))])
        if failure_type in GENERATOR_FAILURES:
            return GeneratorPayload(int(rng.integers(engine_count)))
        return NoPayload()

    # ------------------------------------------------------------------
    # Impact
    # ------------------------------------------------------------------

    def apply_impact(self, aircraft, dt: float):
        """
        Apply every active failure onto the aircraft.

        Parameters
        ----------
        aircraft : Aircraft
            Provides propulsion, controls, systems, autopilot and fuel_kg
        dt : float
            Time step (s), for rate-based effects
        """
        dt = max(0.0, finite_or(dt, 0.0))
        controls = aircraft.controls
        systems = aircraft.systems

        systems.sensors.pitot_blocked = any(t in SENSOR_BLOCKING_FAILURES for t in self._active)

        for failure in self._active.values():
            failure_type = failure.type

            if failure_type in ENGINE_FAILURE_MAP:
                self._apply_engine_failure(aircraft.propulsion, failure)

            elif failure_type in HYDRAULIC_FAILURES:
                limit = self.HYDRAULIC_LIMIT.get(failure.severity, self.HYDRAULIC_LIMIT_DEFAULT)
                for surface in CONTROL_SURFACES:
                    setattr(controls, surface, clamp(getattr(controls, surface), -limit, limit))
                systems.hydraulics.fail_system('A')
                if failure_type is FailureType.MAJOR_HYDRAULIC:
                    systems.hydraulics.fail_system('B')

            elif failure_type is FailureType.FUEL_LEAK:
                rate = self.FUEL_LEAK_RATE.get(failure.severity, self.FUEL_LEAK_RATE_DEFAULT)
                aircraft.fuel_kg = max(0.0, aircraft.fuel_kg - rate * dt)

            elif failure_type in JAM_FAILURES:
                payload = failure.payload
                setattr(controls, payload.surface, payload.stuck_value)

            elif failure_type is FailureType.TOTAL_CONTROL_FAILURE:
                for surface in CONTROL_SURFACES:
                    setattr(controls, surface, 0.0)

            elif failure_type in BREACH_FAILURES:
                systems.pressurization.breach = True

            elif failure_type is FailureType.ELECTRICAL_BUS_FAILURE:
                systems.electrical.fail_all_sources()

            elif failure_type in GENERATOR_FAILURES:
                systems.electrical.fail_generator(failure.payload.generator)

            elif failure_type is FailureType.GEAR_EXTENSION_FAILURE:
                if controls.gear > 0.5:
                    controls.gear = 0.0

            elif failure_type is FailureType.BRAKE_FAILURE:
                controls.brakes = 0.0

            elif failure_type is FailureType.AUTOPILOT_ANOMALY:
                self._apply_autopilot_anomaly(aircraft.autopilot)

    def _apply_engine_failure(self, propulsion, failure: ActiveFailure):
        # Once per activation; a recoverable engine can then be relit by the crew
        if failure.type in self._engine_impacts_applied:
            return

        engine_failure = ENGINE_FAILURE_MAP[failure.type]
        index = failure.payload.engine_index
        targets = range(propulsion.engine_count) if index == ALL_ENGINES else [index]

        self._engine_impacts_applied.add(failure.type)
        for i in targets:
            propulsion.trigger_engine_failure(i, engine_failure, failure.severity,
                                              failure.recovery_possible)

    def _apply_autopilot_anomaly(self, autopilot):
        if not autopilot.engaged:
            return
        if self.rng.random() < self.AUTOPILOT_DISENGAGE_PROBABILITY:
            autopilot.set_engaged(False)
        else:
            heading = autopilot.targets.heading + float(self.rng.random()) - 0.5
            autopilot.targets.heading = heading % 360.0
