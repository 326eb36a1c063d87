"""
Flight simulator tick loop.

One call to FlightSimulator.step() runs a full tick in a fixed order:

1. pilot input (or autopilot commands) onto the control state
2. failure scheduling
3. propulsion environment, throttle and engine update
4. aircraft systems
5. failure impact onto controls, systems, fuel and engines
6. rigid-body integration with the propulsion force and torque
7. fuel burn and fuel starvation
8. warnings, snapshot and history
"""

import logging
from dataclasses import dataclass, fields, replace
from typing import List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from ..core.numerics import clamp, finite_or
from ..core.severity import Severity
from ..core.units import M_TO_FT, MS_TO_FPM
from ..failures.events import CriticalMessage, EventSink
from ..failures.system import FailureContext, FailureSystem
from ..failures.types import ActiveFailure, FailurePayload, FailureType
from ..io.config import AirframeConfig, load_airframe
from ..propulsion.engine import EngineFailureType
from ..propulsion.manager import PropulsionForces
from ..warnings.warning_system import CockpitWarning, WarningInputs, WarningSystem
from .aircraft import Aircraft

logger = logging.getLogger(__name__)


@dataclass
class ControlInput:
    """
    Pilot input for one tick.

    pitch/roll/yaw drive elevator/aileron/rudder in pilot sense; throttle
    below zero selects reverse; differential shifts thrust to the right
    side when positive.
    """

    pitch: float = 0.0
    roll: float = 0.0
    yaw: float = 0.0
    throttle: float = 0.0
    flaps: float = 0.0
    gear: float = 1.0
    airbrake: float = 0.0
    brakes: float = 0.0
    trim: float = 0.0
    differential: float = 0.0

    RANGES = {
        'pitch': (-1.0, 1.0),
        'roll': (-1.0, 1.0),
        'yaw': (-1.0, 1.0),
        'throttle': (-0.7, 1.0),
        'flaps': (0.0, 1.0),
        'gear': (0.0, 1.0),
        'airbrake': (0.0, 1.0),
        'brakes': (0.0, 1.0),
        'trim': (-1.0, 1.0),
        'differential': (-1.0, 1.0),
    }

    def clamped(self) -> 'ControlInput':
        """Copy with every field clamped to its range; non-finite values become 0."""
        values = {}
        for f in fields(self):
            lower, upper = self.RANGES[f.name]
            values[f.name] = clamp(finite_or(getattr(self, f.name), 0.0), lower, upper)
        return ControlInput(**values)


@dataclass(frozen=True)
class FlightSnapshot:
    time: float
    altitude_m: float
    altitude_agl_m: float
    true_airspeed: float            # m/s
    indicated_airspeed_kt: float    # as displayed
    vertical_speed_fpm: float
    roll_deg: float
    pitch_deg: float
    heading_deg: float
    alpha_deg: float
    fuel_kg: float
    on_ground: bool
    crashed: bool
    crash_reason: Optional[str]
    total_thrust: float             # N
    engines_running: int
    engine_n1: Tuple[float, ...]
    engine_thrust: Tuple[float, ...]
    active_failures: Tuple[ActiveFailure, ...]
    warnings: Tuple[CockpitWarning, ...]

    @property
    def master_warning(self) -> Optional[CockpitWarning]:
        return self.warnings[0] if self.warnings else None

    def to_dict(self) -> dict:
        """Flat record, one column per engine parameter."""
        record = {
            'time': self.time,
            'altitude_m': self.altitude_m,
            'altitude_agl_m': self.altitude_agl_m,
            'true_airspeed': self.true_airspeed,
            'indicated_airspeed_kt': self.indicated_airspeed_kt,
            'vertical_speed_fpm': self.vertical_speed_fpm,
            'roll_deg': self.roll_deg,
            'pitch_deg': self.pitch_deg,
            'heading_deg': self.heading_deg,
            'alpha_deg': self.alpha_deg,
            'fuel_kg': self.fuel_kg,
            'on_ground': self.on_ground,
            'crashed': self.crashed,
            'crash_reason': self.crash_reason,
            'total_thrust': self.total_thrust,
            'engines_running': self.engines_running,
        }
        for i, (n1, thrust) in enumerate(zip(self.engine_n1, self.engine_thrust)):
            record[f'n1_{i + 1}'] = n1
            record[f'thrust_{i + 1}'] = thrust
        record['failures'] = ','.join(f.type.value for f in self.active_failures)
        record['warnings'] = ','.join(w.id for w in self.warnings)
        return record


class FlightSimulator:
    """
    Single-aircraft training session.

    Parameters
    ----------
    airframe : str or AirframeConfig
        Packaged airframe name ('a320', 'b737', 'md11', 'b747') or a config
    difficulty : str
        Failure difficulty, rookie through devil
    forced_failure : FailureType or str, optional
        Failure injected 30-90 s into the session
    seed : int, optional
        Seed for the session generator, ignored when rng is given
    rng : numpy.random.Generator, optional
    sink : callable, optional
        Receives failure and critical-message events
    random_checks_enabled : bool
        Enable the periodic random failure check
    terrain_elevation : float
        Ground elevation (m MSL)
    record_history : bool
        Keep every snapshot for history_frame()
    """

    DEFAULT_DT = 1.0 / 60.0
    AIRBORNE_THROTTLE = 0.6

    def __init__(self, airframe: Union[str, AirframeConfig] = 'a320',
                 difficulty: str = 'intermediate',
                 forced_failure: Union[FailureType, str, None] = None,
                 seed: int = None, rng: np.random.Generator = None,
                 sink: EventSink = None, random_checks_enabled: bool = False,
                 terrain_elevation: float = 0.0, record_history: bool = True):
        self.config = airframe if isinstance(airframe, AirframeConfig) else load_airframe(airframe)
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.terrain_elevation = terrain_elevation
        self.record_history = record_history

        self.failures = FailureSystem(difficulty, forced_failure, rng=self.rng, sink=sink,
                                      random_checks_enabled=random_checks_enabled)
        self.warnings = WarningSystem()

        self.aircraft: Aircraft = None
        self.inputs = ControlInput()
        self.history: List[FlightSnapshot] = []
        self.last_forces = PropulsionForces.zero()
        self._frozen_ias_kt: Optional[float] = None
        self._fuel_starved = False
        self._snapshot: Optional[FlightSnapshot] = None

        self.reset()

    # ------------------------------------------------------------------
    # Session control
    # ------------------------------------------------------------------

    def reset(self, altitude: float = None, airspeed: float = 0.0, heading_deg: float = 0.0,
              fuel_kg: float = None, throttle: float = None):
        """
        Start a new session with a fresh aircraft.

        Parameters
        ----------
        altitude : float, optional
            Altitude MSL (m); defaults to a ground start
        airspeed : float
            True airspeed (m/s); an airborne start trims for level flight
        heading_deg : float
        fuel_kg : float, optional
            Defaults to the airframe's configured load
        throttle : float, optional
            Initial master throttle; defaults to idle on the ground and
            AIRBORNE_THROTTLE in the air
        """
        self.aircraft = Aircraft.from_config(self.config, self.rng, self.terrain_elevation)
        physics = self.aircraft.physics
        physics.reset(altitude, airspeed, heading_deg, fuel_kg)

        airborne = not physics.on_ground
        if throttle is None:
            throttle = self.AIRBORNE_THROTTLE if airborne else 0.0
        self.inputs = ControlInput(throttle=throttle, gear=0.0 if airborne else 1.0)

        autopilot = self.aircraft.autopilot
        autopilot.targets.heading = heading_deg % 360.0
        autopilot.targets.altitude = physics.altitude * M_TO_FT
        if airborne:
            autopilot.targets.airspeed = physics.indicated_airspeed_kt

        self.failures.reset()
        self.warnings.reset()
        self.history = []
        self.last_forces = PropulsionForces.zero(self.aircraft.engine_count)
        self._frozen_ias_kt = None
        self._fuel_starved = False
        self._snapshot = self._build_snapshot(physics.indicated_airspeed_kt)

        logger.info("Session reset: %s, alt %.0f m, TAS %.0f m/s, difficulty %s",
                    self.config.name, physics.altitude, airspeed, self.failures.difficulty)

    def set_controls(self, inputs: ControlInput = None, **values):
        """Replace the pilot input, or update individual fields by keyword."""
        if inputs is None:
            inputs = replace(self.inputs, **values)
        self.inputs = inputs.clamped()

    def engage_autopilot(self, heading_deg: float = None, altitude_ft: float = None,
                         airspeed_kt: float = None):
        """Engage heading/altitude hold, keeping current targets where not given."""
        autopilot = self.aircraft.autopilot
        if heading_deg is not None:
            autopilot.targets.heading = heading_deg % 360.0
        if altitude_ft is not None:
            autopilot.targets.altitude = altitude_ft
        if airspeed_kt is not None:
            autopilot.targets.airspeed = airspeed_kt
        autopilot.set_engaged(True)

    def disengage_autopilot(self):
        self.aircraft.autopilot.set_engaged(False)

    def trigger_failure(self, failure_type: FailureType,
                        payload: FailurePayload = None) -> Optional[ActiveFailure]:
        """Inject a failure now; it takes effect on the next tick."""
        return self.failures.trigger_failure(failure_type, self._failure_context(), payload)

    def recover_engine(self, index: int) -> bool:
        """Crew relight attempt on one engine."""
        return self.aircraft.propulsion.recover_engine(index)

    def emergency_shutdown(self):
        self.aircraft.propulsion.emergency_shutdown()

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def step(self, dt: float = None) -> FlightSnapshot:
        """
        Run one tick.

        Parameters
        ----------
        dt : float, optional
            Time step (s), default 1/60; clamped to the integrator's limit

        Returns
        -------
        FlightSnapshot
        """
        aircraft = self.aircraft
        physics = aircraft.physics
        propulsion = aircraft.propulsion

        dt = physics.integrator.clamp_dt(self.DEFAULT_DT if dt is None else dt)
        if dt == 0.0 or physics.crashed:
            return self._snapshot

        controls = aircraft.controls
        self._apply_inputs()
        self._apply_autopilot(dt)
        controls.clamp()

        self.failures.update(dt, self._failure_context())

        atmosphere = physics.atmosphere
        propulsion.update_environment(
            altitude=physics.altitude,
            air_density=atmosphere.density,
            temperature=atmosphere.temperature_celsius,
            humidity=atmosphere.humidity,
            true_airspeed=physics.true_airspeed,
            recompute=False,
        )
        if self.inputs.differential != propulsion.controls.differential_throttle:
            propulsion.set_differential_throttle(self.inputs.differential)
        propulsion.set_master_throttle(controls.throttle)
        propulsion.update(dt)

        aircraft.systems.update(dt, [e.state for e in propulsion.engines],
                                physics.altitude * M_TO_FT)

        self.failures.apply_impact(aircraft, dt)

        # Engine failures applied above take effect in this tick's forces
        forces = propulsion.get_propulsion_forces()
        self.last_forces = forces
        physics.step(dt, forces.force, forces.torque)

        physics.burn_fuel(propulsion.performance.fuel_consumption * dt)
        self._check_fuel_starvation()

        displayed_ias = self._displayed_airspeed()
        self.warnings.update(WarningInputs.from_aircraft(aircraft, displayed_ias))

        self._snapshot = self._build_snapshot(displayed_ias)
        if self.record_history:
            self.history.append(self._snapshot)
        return self._snapshot

    def run(self, duration: float, dt: float = None) -> FlightSnapshot:
        """Step until `duration` seconds have elapsed or the aircraft crashes."""
        dt = self.aircraft.physics.integrator.clamp_dt(self.DEFAULT_DT if dt is None else dt)
        if dt == 0.0:
            return self._snapshot
        for _ in range(int(round(duration / dt))):
            self.step(dt)
            if self.aircraft.physics.crashed:
                break
        return self._snapshot

    def _apply_inputs(self):
        inputs = self.inputs
        controls = self.aircraft.controls
        controls.elevator = inputs.pitch
        controls.aileron = inputs.roll
        controls.rudder = inputs.yaw
        controls.throttle = inputs.throttle
        controls.flaps = inputs.flaps
        controls.gear = inputs.gear
        controls.airbrake = inputs.airbrake
        controls.brakes = inputs.brakes
        controls.trim = inputs.trim

    def _apply_autopilot(self, dt: float):
        physics = self.aircraft.physics
        roll, pitch, heading = physics.euler_angles_deg
        command = self.aircraft.autopilot.update(
            altitude_ft=physics.altitude * M_TO_FT,
            heading_deg=heading,
            roll_deg=roll,
            pitch_deg=pitch,
            airspeed_kt=self._displayed_airspeed(),
            dt=dt,
        )
        if command is None:
            return

        controls = self.aircraft.controls
        controls.elevator = command.elevator
        controls.aileron = command.aileron
        if command.throttle is not None:
            controls.throttle = command.throttle

    def _failure_context(self) -> FailureContext:
        physics = self.aircraft.physics
        return FailureContext(
            temperature_k=physics.atmosphere.temperature,
            throttle=physics.controls.throttle,
            engine_count=self.aircraft.engine_count,
        )

    def _check_fuel_starvation(self):
        if self._fuel_starved or self.aircraft.fuel_kg > 0.0:
            return
        self._fuel_starved = True

        propulsion = self.aircraft.propulsion
        for engine in propulsion.engines:
            if engine.running or not engine.is_failed:
                propulsion.trigger_engine_failure(engine.index, EngineFailureType.FLAMEOUT,
                                                  Severity.CRITICAL, False)

        logger.warning("Fuel exhausted at t=%.1f s, all engines flamed out",
                       self.aircraft.physics.time)
        self.failures.sink(CriticalMessage(title='FUEL EXHAUSTION',
                                           content='WARNING: ALL ENGINES FLAMED OUT.'))

    def _displayed_airspeed(self) -> float:
        """Indicated airspeed as shown to the crew; frozen while the pitot is blocked."""
        actual = self.aircraft.physics.indicated_airspeed_kt
        if not self.aircraft.systems.sensors.pitot_blocked:
            self._frozen_ias_kt = None
            return actual
        if self._frozen_ias_kt is None:
            self._frozen_ias_kt = actual
        return self._frozen_ias_kt

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def _build_snapshot(self, displayed_ias_kt: float) -> FlightSnapshot:
        physics = self.aircraft.physics
        propulsion = self.aircraft.propulsion
        roll, pitch, heading = physics.euler_angles_deg

        return FlightSnapshot(
            time=physics.time,
            altitude_m=physics.altitude,
            altitude_agl_m=physics.altitude_agl,
            true_airspeed=physics.true_airspeed,
            indicated_airspeed_kt=displayed_ias_kt,
            vertical_speed_fpm=physics.vertical_speed * MS_TO_FPM,
            roll_deg=roll,
            pitch_deg=pitch,
            heading_deg=heading,
            alpha_deg=float(np.degrees(physics.alpha)),
            fuel_kg=physics.fuel_kg,
            on_ground=physics.on_ground,
            crashed=physics.crashed,
            crash_reason=physics.crash_reason,
            total_thrust=propulsion.performance.total_thrust,
            engines_running=propulsion.performance.engines_running,
            engine_n1=tuple(e.n1 for e in propulsion.engines),
            engine_thrust=tuple(e.thrust for e in propulsion.engines),
            active_failures=self.failures.active_failures,
            warnings=tuple(self.warnings.active_warnings),
        )

    @property
    def snapshot(self) -> FlightSnapshot:
        return self._snapshot

    def history_frame(self) -> pd.DataFrame:
        """Recorded snapshots as a DataFrame, one row per tick."""
        return pd.DataFrame([s.to_dict() for s in self.history])

    def __repr__(self) -> str:
        return (f"FlightSimulator({self.config.name}, t={self.aircraft.physics.time:.1f} s, "
                f"failures={len(self.failures.active_failures)})")
