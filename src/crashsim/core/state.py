"""
6-DOF rigid-body state vector.

State includes:
- Position (x, y, z) in NED inertial frame (m)
- Velocity (u, v, w) in body frame (m/s)
- Attitude quaternion (q0, q1, q2, q3), body to NED
- Angular rates (p, q, r) in body frame (rad/s)
"""

import numpy as np
from typing import Tuple

from archimedes import struct, field

from .quaternion import Quaternion


@struct(frozen=False)
class RigidBodyState:
    """
    Complete 6-DOF aircraft state vector (13 states, SI units).
    """

    # Position in NED frame (m)
    x_n: float = 0.0  # North
    y_n: float = 0.0  # East
    z_n: float = 0.0  # Down (negative altitude)

    # Velocity in body frame (m/s)
    u: float = 0.0
    v: float = 0.0
    w: float = 0.0

    q: Quaternion = field(default_factory=Quaternion)

    # Angular rates in body frame (rad/s)
    p: float = 0.0
    q_rate: float = 0.0
    r: float = 0.0

    @property
    def position(self) -> np.ndarray:
        """Position vector in NED frame (m)."""
        return np.hstack([self.x_n, self.y_n, self.z_n])

    @position.setter
    def position(self, pos: np.ndarray):
        self.x_n, self.y_n, self.z_n = (float(x) for x in pos)

    @property
    def velocity_body(self) -> np.ndarray:
        """Velocity vector in body frame (m/s)."""
        return np.hstack([self.u, self.v, self.w])

    @velocity_body.setter
    def velocity_body(self, vel: np.ndarray):
        self.u, self.v, self.w = (float(x) for x in vel)

    @property
    def angular_rates(self) -> np.ndarray:
        """Angular rate vector in body frame (rad/s)."""
        return np.hstack([self.p, self.q_rate, self.r])

    @angular_rates.setter
    def angular_rates(self, omega: np.ndarray):
        self.p, self.q_rate, self.r = (float(x) for x in omega)

    @property
    def velocity_inertial(self) -> np.ndarray:
        """Velocity in NED frame (m/s)."""
        return self.q.rotate_vector(self.velocity_body)

    @property
    def airspeed(self) -> float:
        """Total airspeed magnitude (m/s), still air."""
        return float(np.linalg.norm(self.velocity_body))

    @property
    def altitude(self) -> float:
        """Altitude above mean sea level (m, positive up)."""
        return -self.z_n

    @altitude.setter
    def altitude(self, alt: float):
        self.z_n = -float(alt)

    @property
    def vertical_speed(self) -> float:
        """Rate of climb (m/s, positive up)."""
        return float(-self.velocity_inertial[2])

    @property
    def euler_angles(self) -> Tuple[float, float, float]:
        """Roll, pitch, yaw (rad)."""
        return self.q.to_euler_angles()

    def set_euler_angles(self, phi: float, theta: float, psi: float):
        """Set attitude from roll, pitch, yaw (rad)."""
        self.q = Quaternion.from_euler_angles(phi, theta, psi)

    @property
    def alpha(self) -> float:
        """
        Angle of attack (rad).

        alpha = atan(w / u)
        """
        if abs(self.u) < 1e-6:
            return 0.0
        return float(np.arctan2(self.w, self.u))

    @property
    def beta(self) -> float:
        """
        Sideslip angle (rad).

        beta = asin(v / V)
        """
        V = self.airspeed
        if V < 1e-6:
            return 0.0
        return float(np.arcsin(np.clip(self.v / V, -1.0, 1.0)))

    def to_array(self) -> np.ndarray:
        """
        State as array [x_n, y_n, z_n, u, v, w, q0, q1, q2, q3, p, q, r].
        """
        return np.hstack([
            self.x_n, self.y_n, self.z_n,
            self.u, self.v, self.w,
            *self.q.q,
            self.p, self.q_rate, self.r
        ])

    def from_array(self, x: np.ndarray):
        """Load state from a 13-element array."""
        self.x_n, self.y_n, self.z_n = (float(v) for v in x[0:3])
        self.u, self.v, self.w = (float(v) for v in x[3:6])
        self.q = Quaternion(np.array(x[6:10], dtype=float))
        self.p, self.q_rate, self.r = (float(v) for v in x[10:13])

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self.to_array())))

    def copy(self) -> 'RigidBodyState':
        """Deep copy of the state."""
        new_state = RigidBodyState()
        new_state.from_array(self.to_array())
        return new_state

    def __repr__(self) -> str:
        return (f"RigidBodyState(pos={self.position}, vel={self.velocity_body}, "
                f"omega={self.angular_rates})")

    def __str__(self) -> str:
        phi, theta, psi = self.euler_angles

        return (
            f"6-DOF Aircraft State:\n"
            f"  Position (NED):   [{self.x_n:9.1f}, {self.y_n:9.1f}, {self.z_n:9.1f}] m\n"
            f"  Altitude:         {self.altitude:9.1f} m\n"
            f"  Velocity (body):  [{self.u:7.2f}, {self.v:7.2f}, {self.w:7.2f}] m/s\n"
            f"  Airspeed:         {self.airspeed:7.2f} m/s\n"
            f"  Euler angles:     [{np.degrees(phi):6.2f}, {np.degrees(theta):6.2f}, {np.degrees(psi):6.2f}] deg\n"
            f"  Angular rates:    [{self.p:7.4f}, {self.q_rate:7.4f}, {self.r:7.4f}] rad/s"
        )
