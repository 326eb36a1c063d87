"""
Flight physics service.

Owns the rigid-body state, the control positions and the fuel load, and
advances them with RK4 given the propulsion force and torque for the tick.
Handles ground contact, touchdown crash detection and rollback of
non-finite states.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from .aerodynamics import AeroModel
from .controls import ControlState
from .dynamics import AircraftDynamics
from .integrator import RK4Integrator
from .numerics import finite_or
from .state import RigidBodyState
from .units import G0, MS_TO_KT, RHO0
from ..environment.atmosphere import StandardAtmosphere

logger = logging.getLogger(__name__)


class FlightPhysics:
    """
    Rigid-body integrator for one aircraft.

    Parameters
    ----------
    dynamics : AircraftDynamics
        Equations of motion; its mass is updated to empty mass + fuel each step
    aero_model : AeroModel
    empty_mass : float
        Operating empty mass (kg)
    fuel_kg : float
        Initial fuel (kg)
    max_fuel_kg : float, optional
        Tank capacity (kg)
    terrain_elevation : float
        Ground elevation under the aircraft (m MSL)
    integrator : RK4Integrator, optional
        Defaults to max_dt = 0.05 s
    """

    MAX_TOUCHDOWN_SINK = 3.5           # m/s
    MAX_TOUCHDOWN_BANK = np.radians(30)
    MIN_TOUCHDOWN_PITCH = np.radians(-10)
    ROLLING_FRICTION = 0.02
    BRAKE_FRICTION = 0.5

    def __init__(self, dynamics: AircraftDynamics, aero_model: AeroModel,
                 empty_mass: float, fuel_kg: float = 0.0, max_fuel_kg: float = None,
                 terrain_elevation: float = 0.0, integrator: RK4Integrator = None,
                 temperature_offset: float = 0.0):
        self.dynamics = dynamics
        self.aero_model = aero_model
        self.empty_mass = empty_mass
        self.max_fuel_kg = max_fuel_kg if max_fuel_kg is not None else max(fuel_kg, 0.0)
        self.initial_fuel_kg = fuel_kg
        self.terrain_elevation = terrain_elevation
        self.integrator = integrator or RK4Integrator(dt=1.0 / 60.0, max_dt=0.05)
        self.atmosphere = StandardAtmosphere(0.0, temperature_offset=temperature_offset)

        self.state = RigidBodyState()
        self.controls = ControlState()
        self._fuel_kg = 0.0
        self.on_ground = True
        self.crashed = False
        self.crash_reason: Optional[str] = None
        self.time = 0.0

        self.reset()

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def reset(self, altitude: float = None, airspeed: float = 0.0, heading_deg: float = 0.0,
              fuel_kg: float = None):
        """
        Reset to a ground start, or to trimmed level flight when airspeed > 0
        and the altitude is above the terrain.

        Parameters
        ----------
        altitude : float, optional
            Altitude MSL (m); defaults to the terrain elevation
        airspeed : float
            True airspeed (m/s)
        heading_deg : float
            Initial heading (deg)
        fuel_kg : float, optional
            Fuel load; defaults to the initial load
        """
        if altitude is None:
            altitude = self.terrain_elevation
        altitude = max(float(altitude), self.terrain_elevation)

        self._fuel_kg = self.initial_fuel_kg if fuel_kg is None else max(0.0, fuel_kg)
        self.controls = ControlState()
        self.crashed = False
        self.crash_reason = None
        self.time = 0.0

        self.atmosphere.update(altitude)

        state = RigidBodyState()
        state.altitude = altitude
        self.on_ground = altitude <= self.terrain_elevation + 0.01

        alpha = 0.0
        if not self.on_ground and airspeed > 0.0:
            alpha = self.aero_model.trim_alpha(self.mass * G0, airspeed, self.atmosphere.density)
            self.controls.gear = 0.0

        state.set_euler_angles(0.0, alpha, np.radians(heading_deg))
        state.u = airspeed * np.cos(alpha)
        state.w = airspeed * np.sin(alpha)

        self.state = state
        self._last_good = state.copy()

    # ------------------------------------------------------------------
    # Mass and fuel
    # ------------------------------------------------------------------

    @property
    def fuel_kg(self) -> float:
        return self._fuel_kg

    @fuel_kg.setter
    def fuel_kg(self, value: float):
        self._fuel_kg = max(0.0, finite_or(value, self._fuel_kg))

    def burn_fuel(self, mass: float):
        """Remove fuel (kg); the tank never goes negative."""
        self.fuel_kg = self._fuel_kg - max(0.0, finite_or(mass, 0.0))

    @property
    def mass(self) -> float:
        return self.empty_mass + self._fuel_kg

    # ------------------------------------------------------------------
    # Step
    # ------------------------------------------------------------------

    def step(self, dt: float, propulsion_force: np.ndarray = None,
             propulsion_torque: np.ndarray = None) -> RigidBodyState:
        """
        Advance the aircraft by one step.

        Parameters
        ----------
        dt : float
            Requested step (s), clamped to the integrator's max_dt
        propulsion_force : np.ndarray, shape (3,)
            Body-frame thrust force (N), held constant over the step
        propulsion_torque : np.ndarray, shape (3,)
            Body-frame thrust torque (N·m)

        Returns
        -------
        RigidBodyState
        """
        dt = self.integrator.clamp_dt(dt)
        if dt == 0.0 or self.crashed:
            return self.state

        thrust = _finite_vector(propulsion_force)
        thrust_torque = _finite_vector(propulsion_torque)

        self.controls.clamp()
        self.atmosphere.update(self.state.altitude)
        density = self.atmosphere.density
        self.dynamics.mass = self.mass

        def forces_moments(s: RigidBodyState):
            aero_f, aero_m = self.aero_model.compute_forces_moments(s, self.controls, density)
            return aero_f + thrust, aero_m + thrust_torque

        new_state = self.integrator.step(
            self.state, lambda s: self.dynamics.state_derivative(s, forces_moments), dt
        )

        if not new_state.is_finite():
            logger.warning("Non-finite state at t=%.2f s, rolling back to last good state", self.time)
            self.state = self._last_good.copy()
            self.state.angular_rates = np.zeros(3)
            return self.state

        self.state = new_state
        self._apply_ground_constraint(dt)
        self.time += dt

        self._last_good = self.state.copy()
        return self.state

    def _apply_ground_constraint(self, dt: float):
        state = self.state
        ground = self.terrain_elevation

        if state.altitude > ground + 0.01:
            self.on_ground = False
            return

        phi, theta, psi = state.euler_angles
        v_inertial = state.velocity_inertial

        if not self.on_ground:
            sink_rate = v_inertial[2]
            reason = None
            if sink_rate > self.MAX_TOUCHDOWN_SINK:
                reason = f"hard impact ({sink_rate:.1f} m/s sink)"
            elif abs(phi) > self.MAX_TOUCHDOWN_BANK:
                reason = f"wing strike ({np.degrees(phi):.0f} deg bank)"
            elif theta < self.MIN_TOUCHDOWN_PITCH:
                reason = f"nose-first impact ({np.degrees(theta):.0f} deg pitch)"

            if reason is not None:
                self._crash(reason)
                return
            logger.info("Touchdown at %.1f m/s sink", sink_rate)

        self.on_ground = True
        state.altitude = ground

        # No sinking through the ground
        v_inertial[2] = min(v_inertial[2], 0.0)

        # Rolling and braking friction on the horizontal velocity
        horizontal = v_inertial[:2]
        speed = float(np.linalg.norm(horizontal))
        if speed > 0.0:
            mu = self.ROLLING_FRICTION + self.BRAKE_FRICTION * self.controls.brakes
            new_speed = max(0.0, speed - mu * G0 * dt)
            v_inertial[:2] = horizontal * (new_speed / speed)

        # Wings level on the gear, nose not below the horizon
        theta = max(theta, 0.0)
        state.set_euler_angles(0.0, theta, psi)
        state.velocity_body = state.q.inverse_rotate_vector(v_inertial)

        p, q, r = state.angular_rates
        if theta == 0.0:
            q = max(q, 0.0)
        state.angular_rates = np.array([0.0, q, r])

    def _crash(self, reason: str):
        self.crashed = True
        self.crash_reason = reason
        self.on_ground = True
        self.state.altitude = self.terrain_elevation
        self.state.velocity_body = np.zeros(3)
        self.state.angular_rates = np.zeros(3)
        logger.warning("Crash: %s", reason)

    # ------------------------------------------------------------------
    # Derived quantities
    # ------------------------------------------------------------------

    @property
    def altitude(self) -> float:
        """Altitude MSL (m)."""
        return self.state.altitude

    @property
    def altitude_agl(self) -> float:
        return max(0.0, self.state.altitude - self.terrain_elevation)

    @property
    def true_airspeed(self) -> float:
        """True airspeed (m/s)."""
        return self.state.airspeed

    @property
    def density(self) -> float:
        return self.atmosphere.density

    @property
    def indicated_airspeed(self) -> float:
        """Equivalent airspeed TAS·sqrt(rho/rho0) (m/s), used as IAS."""
        return self.state.airspeed * np.sqrt(max(self.atmosphere.density, 0.0) / RHO0)

    @property
    def indicated_airspeed_kt(self) -> float:
        return self.indicated_airspeed * MS_TO_KT

    @property
    def vertical_speed(self) -> float:
        """Rate of climb (m/s)."""
        return self.state.vertical_speed

    @property
    def euler_angles_deg(self) -> Tuple[float, float, float]:
        """Roll, pitch (deg) and heading (deg, 0-360)."""
        phi, theta, psi = self.state.euler_angles
        return float(np.degrees(phi)), float(np.degrees(theta)), float(np.degrees(psi) % 360.0)

    @property
    def alpha(self) -> float:
        """Angle of attack (rad)."""
        return self.state.alpha

    def __repr__(self) -> str:
        return (f"FlightPhysics(alt={self.altitude:.0f} m, TAS={self.true_airspeed:.1f} m/s, "
                f"on_ground={self.on_ground}, crashed={self.crashed})")


def _finite_vector(v) -> np.ndarray:
    if v is None:
        return np.zeros(3)
    v = np.asarray(v, dtype=float).reshape(3)
    return np.where(np.isfinite(v), v, 0.0)
