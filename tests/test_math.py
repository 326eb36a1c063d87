"""
Math primitive tests

Tests for the core building blocks:
- Numeric guards
- Vector3
- Quaternion
- Great-circle helpers
- Dynamics and RK4 integration
- ISA atmosphere
"""

import pytest
import numpy as np

from crashsim.core.numerics import clamp, finite_or, smoothing_factor
from crashsim.core.vector import Vector3
from crashsim.core.quaternion import Quaternion
from crashsim.core.geodesy import great_circle_distance, initial_bearing
from crashsim.core.state import RigidBodyState
from crashsim.core.dynamics import AircraftDynamics
from crashsim.core.integrator import RK4Integrator
from crashsim.environment.atmosphere import StandardAtmosphere


class TestNumerics:
    """Test the NaN/Infinity guards."""

    def test_finite_or(self):
        """Test non-finite values fall back to the default."""
        assert finite_or(3.5) == 3.5
        assert finite_or(float('nan'), 1.0) == 1.0
        assert finite_or(float('inf'), -2.0) == -2.0
        assert finite_or(None, 7.0) == 7.0

    def test_clamp(self):
        """Test clamping to a range."""
        assert clamp(2.0, -1.0, 1.0) == 1.0
        assert clamp(-2.0, -1.0, 1.0) == -1.0
        assert clamp(0.3, -1.0, 1.0) == 0.3
        assert clamp(float('nan'), -0.7, 1.0) == -0.7

    def test_smoothing_factor_reference_step(self):
        """At the reference step the constant is unchanged."""
        assert smoothing_factor(0.015, 1.0 / 60.0, 1.0 / 60.0) == pytest.approx(0.015)

    def test_smoothing_factor_composes(self):
        """Two half steps move as far as one full step."""
        half = smoothing_factor(0.02, 1.0 / 120.0, 1.0 / 60.0)
        full = smoothing_factor(0.02, 1.0 / 60.0, 1.0 / 60.0)
        assert 1.0 - (1.0 - half)**2 == pytest.approx(full)

    def test_smoothing_factor_zero_dt(self):
        """Test smoothing factor at zero time step."""
        assert smoothing_factor(0.02, 0.0, 1.0 / 60.0) == 0.0


class TestVector3:
    """Test vector algebra."""

    def test_add_sub_scale(self):
        """Test vector addition, subtraction and scaling."""
        a = Vector3(1.0, 2.0, 3.0)
        b = Vector3(0.5, -1.0, 2.0)
        assert np.allclose((a + b).to_array(), [1.5, 1.0, 5.0])
        assert np.allclose((a - b).to_array(), [0.5, 3.0, 1.0])
        assert np.allclose((a * 2.0).to_array(), [2.0, 4.0, 6.0])

    def test_cross_product(self):
        """Test cross product of unit vectors."""
        x = Vector3(1.0, 0.0, 0.0)
        y = Vector3(0.0, 1.0, 0.0)
        assert np.allclose(x.cross(y).to_array(), [0.0, 0.0, 1.0])

    def test_dot_and_magnitude(self):
        """Test dot product and magnitude."""
        v = Vector3(3.0, 4.0, 0.0)
        assert v.dot(v) == pytest.approx(25.0)
        assert v.magnitude() == pytest.approx(5.0)

    def test_normalize_zero_vector(self):
        """The zero vector normalizes to zero instead of NaN."""
        assert np.allclose(Vector3().normalize().to_array(), [0.0, 0.0, 0.0])
        assert Vector3(0.0, 0.0, 2.0).normalize().magnitude() == pytest.approx(1.0)

    def test_array_round_trip(self):
        """Test conversion to and from numpy arrays."""
        v = Vector3.from_array(np.array([1.0, -2.0, 0.5]))
        assert np.allclose(v.to_array(), [1.0, -2.0, 0.5])


class TestQuaternion:
    """Test quaternion operations."""

    def test_identity_quaternion(self):
        """Test identity quaternion."""
        q = Quaternion()
        assert np.allclose(q.q, [1, 0, 0, 0])

    def test_euler_angle_conversion(self):
        """Test Euler angle conversion."""
        phi, theta, psi = np.radians([10, 5, 15])
        q = Quaternion.from_euler_angles(phi, theta, psi)
        phi2, theta2, psi2 = q.to_euler_angles()

        assert np.isclose(phi, phi2, atol=1e-9)
        assert np.isclose(theta, theta2, atol=1e-9)
        assert np.isclose(psi, psi2, atol=1e-9)

    def test_yaw_rotation(self):
        """90 deg yaw turns body x (nose) toward east."""
        q = Quaternion.from_euler_angles(0, 0, np.pi / 2)
        assert np.allclose(q.rotate_vector([1, 0, 0]), [0, 1, 0], atol=1e-12)

    def test_pitch_up_rotation(self):
        """Nose-up pitch points body x upward (negative down)."""
        q = Quaternion.from_euler_angles(0, np.radians(30), 0)
        nose = q.rotate_vector([1, 0, 0])
        assert nose[2] == pytest.approx(-0.5)

    def test_rotation_matrix_matches_rotate_vector(self):
        """Test rotation matrix agrees with vector rotation."""
        q = Quaternion.from_euler_angles(*np.radians([20, -10, 135]))
        v = np.array([1.0, 2.0, -3.0])
        assert np.allclose(q.to_rotation_matrix() @ v, q.rotate_vector(v))

    def test_inverse_rotation(self):
        """Test inverse rotation undoes rotation."""
        q = Quaternion.from_euler_angles(*np.radians([5, 10, 200]))
        v = np.array([0.3, -1.2, 4.0])
        assert np.allclose(q.inverse_rotate_vector(q.rotate_vector(v)), v)

    def test_multiply_composes_rotations(self):
        """Test quaternion product composes rotations."""
        yaw = Quaternion.from_euler_angles(0, 0, np.radians(90))
        combined = yaw * yaw
        assert np.allclose(combined.rotate_vector([1, 0, 0]), [-1, 0, 0], atol=1e-12)

    def test_conjugate_is_inverse(self):
        """Test conjugate of a unit quaternion."""
        q = Quaternion.from_euler_angles(0.1, 0.2, 0.3)
        assert np.allclose((q * q.conjugate()).q, [1, 0, 0, 0])

    def test_normalize_degenerate(self):
        """A zero or NaN quaternion resets to identity."""
        assert np.allclose(Quaternion(np.zeros(4)).normalize().q, [1, 0, 0, 0])
        assert np.allclose(Quaternion(np.full(4, np.nan)).normalize().q, [1, 0, 0, 0])

    def test_gimbal_lock_is_finite(self):
        """Test Euler angles at gimbal lock."""
        q = Quaternion.from_euler_angles(0.0, np.pi / 2, 0.0)
        angles = q.to_euler_angles()
        assert np.all(np.isfinite(angles))
        assert angles[1] == pytest.approx(np.pi / 2, abs=1e-6)

    def test_integrate_stays_normalized(self):
        """Test integration keeps unit norm."""
        q = Quaternion()
        for _ in range(100):
            q = q.integrate(np.array([0.1, -0.2, 0.05]), 0.01)
        assert np.linalg.norm(q.q) == pytest.approx(1.0)

    def test_integrate_zero_rate(self):
        """Test integration with zero body rate."""
        q = Quaternion.from_euler_angles(0.1, 0.2, 0.3)
        assert np.allclose(q.integrate(np.zeros(3), 0.05).q, q.q)


class TestGeodesy:
    """Test great-circle helpers."""

    def test_one_degree_of_longitude_on_equator(self):
        """Test one degree of longitude on the equator."""
        assert great_circle_distance(0, 0, 0, 1) == pytest.approx(111195.0, rel=1e-4)

    def test_zero_distance(self):
        """Test distance between identical points."""
        assert great_circle_distance(48.0, 11.0, 48.0, 11.0) == pytest.approx(0.0)

    def test_cardinal_bearings(self):
        """Test bearings to the cardinal directions."""
        assert initial_bearing(0, 0, 0, 1) == pytest.approx(90.0)
        assert initial_bearing(0, 0, 1, 0) == pytest.approx(0.0)
        assert initial_bearing(0, 0, -1, 0) == pytest.approx(180.0)
        assert initial_bearing(0, 0, 0, -1) == pytest.approx(270.0)


class TestRigidBodyState:
    """Test the 13-element state."""

    def test_altitude_sign(self):
        """Test altitude is negative down."""
        state = RigidBodyState()
        state.altitude = 1000.0
        assert state.z_n == -1000.0
        assert state.altitude == 1000.0

    def test_array_round_trip(self):
        """Test state vector conversion."""
        state = RigidBodyState()
        state.altitude = 500.0
        state.velocity_body = np.array([100.0, 1.0, 5.0])
        state.set_euler_angles(0.1, 0.05, 1.0)

        copy = state.copy()
        assert np.allclose(copy.to_array(), state.to_array())

    def test_alpha_and_beta(self):
        """Test angle of attack and sideslip."""
        state = RigidBodyState()
        state.velocity_body = np.array([100.0, 0.0, 100.0 * np.tan(np.radians(5))])
        assert np.degrees(state.alpha) == pytest.approx(5.0)
        assert state.beta == pytest.approx(0.0)

    def test_vertical_speed_in_climb(self):
        """Level body velocity with a nose-up attitude climbs."""
        state = RigidBodyState()
        state.set_euler_angles(0.0, np.radians(10), 0.0)
        state.velocity_body = np.array([100.0, 0.0, 0.0])
        assert state.vertical_speed == pytest.approx(100.0 * np.sin(np.radians(10)))

    def test_is_finite(self):
        """Test finite state check."""
        state = RigidBodyState()
        assert state.is_finite()
        state.u = float('nan')
        assert not state.is_finite()


class TestDynamicsAndIntegration:
    """Test equations of motion and RK4."""

    @staticmethod
    def _no_forces(state):
        return np.zeros(3), np.zeros(3)

    def test_gravity_only_derivative(self):
        """Test state derivative under gravity alone."""
        dynamics = AircraftDynamics(1000.0, np.diag([1e3, 2e3, 3e3]))
        state_dot = dynamics.state_derivative(RigidBodyState(), self._no_forces)

        assert np.allclose(state_dot[3:6], [0.0, 0.0, dynamics.g])
        assert np.allclose(state_dot[10:13], 0.0)

    def test_free_fall(self):
        """Constant acceleration is integrated exactly by RK4."""
        dynamics = AircraftDynamics(1000.0, np.diag([1e3, 2e3, 3e3]))
        integrator = RK4Integrator(dt=0.01)
        state = RigidBodyState()

        for _ in range(100):
            state = integrator.step(state, lambda s: dynamics.state_derivative(s, self._no_forces))

        assert state.w == pytest.approx(dynamics.g, rel=1e-9)
        assert state.z_n == pytest.approx(0.5 * dynamics.g, rel=1e-9)

    def test_moment_produces_angular_acceleration(self):
        """Test moment gives angular acceleration."""
        dynamics = AircraftDynamics(1000.0, np.diag([1e3, 2e3, 3e3]))
        state_dot = dynamics.state_derivative(
            RigidBodyState(), lambda s: (np.zeros(3), np.array([0.0, 4e3, 0.0]))
        )
        assert state_dot[11] == pytest.approx(2.0)

    def test_dt_clamped(self):
        """Test integrator time step limit."""
        integrator = RK4Integrator(dt=0.01, max_dt=0.05)
        assert integrator.clamp_dt(0.2) == 0.05
        assert integrator.clamp_dt(0.02) == 0.02
        assert integrator.clamp_dt(float('nan')) == 0.0
        assert integrator.clamp_dt(-1.0) == 0.0


class TestAtmosphere:
    """Test the ISA model."""

    def test_sea_level(self):
        """Test sea level standard values."""
        atm = StandardAtmosphere(0.0)
        assert atm.temperature == pytest.approx(288.15)
        assert atm.pressure == pytest.approx(101325.0)
        assert atm.density == pytest.approx(1.225, rel=1e-3)
        assert atm.speed_of_sound == pytest.approx(340.3, rel=1e-3)

    def test_tropopause(self):
        """Test tropopause temperature."""
        atm = StandardAtmosphere(11000.0)
        assert atm.temperature == pytest.approx(216.65)
        assert atm.density == pytest.approx(0.3639, rel=1e-2)

    def test_density_decreases_with_altitude(self):
        """Test density decreases with altitude."""
        densities = [StandardAtmosphere(h).density for h in (0, 3000, 6000, 9000, 12000)]
        assert all(a > b for a, b in zip(densities, densities[1:]))

    def test_temperature_offset(self):
        """Test temperature offset from standard."""
        hot = StandardAtmosphere(0.0, temperature_offset=15.0)
        assert hot.temperature_celsius == pytest.approx(30.0)
        assert hot.density < StandardAtmosphere(0.0).density

    def test_non_finite_altitude(self):
        """Test non-finite altitude input."""
        atm = StandardAtmosphere(float('nan'))
        assert np.isfinite(atm.density)
