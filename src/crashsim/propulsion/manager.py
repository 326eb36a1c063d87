"""
Propulsion manager: the engine fleet of one airframe.

Maps master and differential throttle onto the individual engines, runs the
optional random engine-failure scheduler, aggregates fleet metrics and turns
the per-engine thrust into a body-frame force and torque for the integrator.
"""

import logging
from dataclasses import dataclass, replace
from typing import Tuple

import numpy as np

from ..core.numerics import clamp, finite_or
from ..core.severity import Severity
from ..core.units import RHO0
from ..exceptions import InvalidEngineIndexError
from .engine import Engine, EngineFailureType, EngineSpec, EngineState
from .layouts import EngineLayout, get_layout

logger = logging.getLogger(__name__)

RANDOM_FAILURE_TYPES = (
    EngineFailureType.FLAMEOUT,
    EngineFailureType.FIRE,
    EngineFailureType.DAMAGE,
    EngineFailureType.FUEL_LEAK,
)


@dataclass(frozen=True)
class GlobalControls:
    master_throttle: float = 0.0
    differential_throttle: float = 0.0
    thrust_vectoring: float = 0.0
    reverse_thrust: bool = False
    emergency_shutdown: bool = False


@dataclass(frozen=True)
class PropulsionEnvironment:
    air_density: float = RHO0
    temperature: float = 15.0      # °C
    humidity: float = 0.5
    wind_speed: float = 0.0        # m/s
    wind_direction: float = 0.0    # deg
    true_airspeed: float = 0.0     # m/s


@dataclass(frozen=True)
class PerformanceMetrics:
    total_thrust: float = 0.0      # N
    fuel_consumption: float = 0.0  # kg/s
    average_egt: float = 0.0       # °C
    engines_running: int = 0
    thrust_asymmetry: float = 0.0
    efficiency: float = 0.0


@dataclass(frozen=True)
class PropulsionState:
    engines: Tuple[EngineState, ...]
    controls: GlobalControls
    environment: PropulsionEnvironment
    performance: PerformanceMetrics


@dataclass(frozen=True)
class PropulsionForces:
    """Aggregated propulsion output for one tick (body frame)."""

    force: np.ndarray                  # N, shape (3,)
    torque: np.ndarray                 # N·m, shape (3,)
    individual_thrusts: Tuple[float, ...]

    @classmethod
    def zero(cls, engine_count: int = 0) -> 'PropulsionForces':
        return cls(np.zeros(3), np.zeros(3), (0.0,) * engine_count)


class PropulsionManager:
    """
    Fleet of engines for a twin, tri or quad layout.

    Parameters
    ----------
    layout : str or EngineLayout
        Layout name ('twin', 'tri', 'quad') or a layout instance
    engine_count : int, optional
        Expected number of engines; a mismatch with the layout raises
        ConfigurationError
    engine_spec : EngineSpec, optional
        Template for every engine; the mount's rated thrust is used unless
        max_thrust is given
    max_thrust : float, optional
        Per-engine thrust override (N)
    torque_scale : float
        Multiplier on r × F torque
    rng : numpy.random.Generator, optional
    """

    THROTTLE_MIN = Engine.THROTTLE_MIN
    THROTTLE_MAX = Engine.THROTTLE_MAX
    MAX_VECTORING_ANGLE = np.radians(15.0)

    def __init__(self, layout='twin', engine_count: int = None,
                 engine_spec: EngineSpec = None, max_thrust: float = None,
                 torque_scale: float = 1.0, rng: np.random.Generator = None):
        if isinstance(layout, EngineLayout):
            if engine_count is not None and engine_count != layout.engine_count:
                layout = get_layout(layout.name, engine_count)
        else:
            layout = get_layout(layout, engine_count)

        self.layout = layout
        self.torque_scale = torque_scale
        self.rng = rng if rng is not None else np.random.default_rng()

        template = engine_spec or EngineSpec()
        self.engines = []
        for index, mount in enumerate(layout.mounts):
            thrust = max_thrust if max_thrust is not None else mount.max_thrust
            engine = Engine(index, replace(template, max_thrust=thrust),
                            position=mount.position, rng=self.rng)
            self.engines.append(engine)

        self._controls = GlobalControls()
        self._environment = PropulsionEnvironment()
        self._performance = PerformanceMetrics()

        self.random_failures_enabled = False
        self.failure_rate = 0.0
        self.time_to_next_failure = None

        self._calculate_performance_metrics()

        logger.info("Initialized %s propulsion: %d engines, %.0f N total rated thrust",
                    layout.name, len(self.engines), self.total_max_thrust)

    @property
    def engine_count(self) -> int:
        return len(self.engines)

    @property
    def total_max_thrust(self) -> float:
        return sum(e.spec.max_thrust for e in self.engines)

    def _engine(self, index: int) -> Engine:
        if not isinstance(index, (int, np.integer)) or not 0 <= index < len(self.engines):
            raise InvalidEngineIndexError(index, len(self.engines))
        return self.engines[index]

    # ------------------------------------------------------------------
    # Throttle
    # ------------------------------------------------------------------

    def set_master_throttle(self, throttle: float):
        """Set master throttle and redistribute it to every non-failed engine."""
        throttle = finite_or(throttle, self._controls.master_throttle)
        master = clamp(throttle, self.THROTTLE_MIN, self.THROTTLE_MAX)
        self._controls = replace(self._controls, master_throttle=master,
                                 reverse_thrust=master < 0.0)

        updated = 0
        for engine in self.engines:
            if not engine.is_failed:
                engine.set_throttle(self.calculate_individual_throttle(engine.index, master))
                updated += 1

        logger.debug("Master throttle %.3f applied to %d engines", master, updated)

    def calculate_individual_throttle(self, index: int, master: float) -> float:
        """
        Throttle for one engine given the master lever and the stored differential.

        The result stays on the master's side of zero: [0, 1] for forward
        thrust, [-0.7, 0] for reverse.
        """
        mount = self.layout.mounts[self._engine(index).index]
        value = master + mount.differential_gain * self._controls.differential_throttle

        if master < 0.0:
            return clamp(value, self.THROTTLE_MIN, 0.0)
        return clamp(value, 0.0, self.THROTTLE_MAX)

    def set_differential_throttle(self, differential: float):
        """Set differential throttle in [-1, 1] (positive = more right-side thrust)."""
        differential = clamp(finite_or(differential, 0.0), -1.0, 1.0)
        self._controls = replace(self._controls, differential_throttle=differential)
        self.set_master_throttle(self._controls.master_throttle)

    def set_engine_throttle(self, index: int, throttle: float):
        """Set a single engine's throttle directly; ignored for failed engines."""
        engine = self._engine(index)
        if not engine.is_failed:
            engine.set_throttle(throttle)

    def set_thrust_vectoring(self, value: float):
        """Nozzle deflection in [-1, 1], full scale ±15°, positive pitches thrust up."""
        value = clamp(finite_or(value, 0.0), -1.0, 1.0)
        self._controls = replace(self._controls, thrust_vectoring=value)

    # ------------------------------------------------------------------
    # Failures
    # ------------------------------------------------------------------

    def trigger_engine_failure(self, index: int, failure_type: EngineFailureType,
                               severity: Severity = Severity.MAJOR,
                               recovery_possible: bool = False):
        engine = self._engine(index)
        engine.trigger_failure(failure_type, severity, recovery_possible)

    def recover_engine(self, index: int) -> bool:
        """Recover one engine; on success it picks the master throttle back up."""
        engine = self._engine(index)
        recovered = engine.recover_from_failure()
        if recovered:
            engine.set_throttle(self.calculate_individual_throttle(index, self._controls.master_throttle))
        return recovered

    def emergency_shutdown(self):
        """Critical, non-recoverable flameout on every engine still producing power."""
        self._controls = replace(self._controls, emergency_shutdown=True)

        for engine in self.engines:
            if engine.running or not engine.is_failed:
                engine.trigger_failure(EngineFailureType.FLAMEOUT, Severity.CRITICAL, False)

        logger.warning("Emergency shutdown executed on %s propulsion", self.layout.name)

    def enable_random_failures(self, enabled: bool, failure_rate: float = 0.001):
        """
        Enable the random engine-failure scheduler.

        Parameters
        ----------
        enabled : bool
        failure_rate : float
            Mean failures per second; inter-failure times are exponential
        """
        self.random_failures_enabled = bool(enabled)
        self.failure_rate = max(0.0, finite_or(failure_rate, 0.0))
        self.time_to_next_failure = self._draw_time_to_failure() if self.random_failures_enabled else None

    def _draw_time_to_failure(self):
        if self.failure_rate <= 0.0:
            return None
        return float(self.rng.exponential(1.0 / self.failure_rate))

    def _update_failure_scheduler(self, dt: float):
        if self.time_to_next_failure is None:
            return

        self.time_to_next_failure -= dt
        if self.time_to_next_failure > 0.0:
            return

        candidates = [e for e in self.engines if not e.is_failed]
        if candidates:
            engine = candidates[self.rng.integers(len(candidates))]
            failure_type = RANDOM_FAILURE_TYPES[self.rng.integers(len(RANDOM_FAILURE_TYPES))]
            severity = list(Severity)[self.rng.integers(len(Severity))]
            engine.trigger_failure(failure_type, severity, bool(self.rng.random() < 0.3))

        self.time_to_next_failure = self._draw_time_to_failure()

    # ------------------------------------------------------------------
    # Environment and update
    # ------------------------------------------------------------------

    def update_environment(self, altitude: float, air_density: float, temperature: float,
                           humidity: float, wind_speed: float = 0.0, wind_direction: float = 0.0,
                           true_airspeed: float = 0.0, recompute: bool = True):
        """Replace the fleet environment and forward it to every engine."""
        density = finite_or(air_density, RHO0)
        self._environment = PropulsionEnvironment(
            air_density=density if density > 0.0 else RHO0,
            temperature=finite_or(temperature, 15.0),
            humidity=clamp(finite_or(humidity, 0.5), 0.0, 1.0),
            wind_speed=finite_or(wind_speed, 0.0),
            wind_direction=finite_or(wind_direction, 0.0),
            true_airspeed=max(0.0, finite_or(true_airspeed, 0.0)),
        )

        for engine in self.engines:
            engine.update_environment(altitude, air_density, temperature, humidity,
                                      true_airspeed, recompute=recompute)

    def update(self, dt: float) -> PropulsionForces:
        """
        Advance every engine by dt and return the aggregated forces.

        Parameters
        ----------
        dt : float
            Time step (s)

        Returns
        -------
        PropulsionForces
        """
        dt = max(0.0, finite_or(dt, 0.0))

        if self.random_failures_enabled:
            self._update_failure_scheduler(dt)

        for engine in self.engines:
            engine.calculate_parameters(dt)

        self._calculate_performance_metrics()
        return self.get_propulsion_forces()

    def _calculate_performance_metrics(self):
        states = [e.state for e in self.engines]
        running = [s for s in states if s.running]

        total_thrust = sum(s.thrust for s in states)
        fuel = sum(s.fuel_flow for s in states)
        average_egt = sum(s.egt for s in running) / len(running) if running else 0.0

        magnitudes = [abs(s.thrust) for s in states]
        max_thrust = max(magnitudes) if magnitudes else 0.0
        asymmetry = (max_thrust - min(magnitudes)) / max_thrust if max_thrust > 0.0 else 0.0

        efficiency = (abs(total_thrust) / fuel) / 100.0 if fuel > 0.0 else 0.0

        self._performance = PerformanceMetrics(
            total_thrust=finite_or(total_thrust),
            fuel_consumption=finite_or(fuel),
            average_egt=finite_or(average_egt),
            engines_running=len(running),
            thrust_asymmetry=finite_or(asymmetry),
            efficiency=finite_or(efficiency),
        )

    def get_propulsion_forces(self) -> PropulsionForces:
        """Body-frame force and torque from the running engines."""
        delta = self._controls.thrust_vectoring * self.MAX_VECTORING_ANGLE
        direction = np.array([np.cos(delta), 0.0, -np.sin(delta)])

        force = np.zeros(3)
        torque = np.zeros(3)

        for engine in self.engines:
            if not engine.running:
                continue
            f = engine.thrust * direction
            force += f
            torque += self.torque_scale * np.cross(engine.position.to_array(), f)

        force = np.where(np.isfinite(force), force, 0.0)
        torque = np.where(np.isfinite(torque), torque, 0.0)

        return PropulsionForces(
            force=force,
            torque=torque,
            individual_thrusts=tuple(e.thrust for e in self.engines),
        )

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    @property
    def controls(self) -> GlobalControls:
        return self._controls

    @property
    def performance(self) -> PerformanceMetrics:
        return self._performance

    @property
    def state(self) -> PropulsionState:
        return PropulsionState(
            engines=tuple(e.state for e in self.engines),
            controls=self._controls,
            environment=self._environment,
            performance=self._performance,
        )

    def __repr__(self) -> str:
        return (f"PropulsionManager({self.layout.name}, engines={len(self.engines)}, "
                f"running={self._performance.engines_running}, "
                f"thrust={self._performance.total_thrust:.0f} N)")
