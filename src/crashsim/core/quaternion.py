"""
Quaternion attitude representation.

Convention: q = [q0, q1, q2, q3] = [scalar, vector], unit norm.
The quaternion rotates body-frame vectors into the NED inertial frame,
built from the aerospace yaw-pitch-roll (ZYX) sequence.
"""

import numpy as np
from typing import Tuple

from archimedes import struct, field


@struct(frozen=False)
class Quaternion:
    """
    Unit quaternion for aircraft attitude.

    Rotation from body frame to inertial (NED) frame.
    """

    q: np.ndarray = field(default_factory=lambda: np.array([1.0, 0.0, 0.0, 0.0]))

    def normalize(self) -> 'Quaternion':
        """Normalize in place; a degenerate or non-finite quaternion resets to identity."""
        q = np.asarray(self.q, dtype=float)
        norm = np.linalg.norm(q)
        if not np.isfinite(norm) or norm < 1e-10:
            self.q = np.array([1.0, 0.0, 0.0, 0.0])
        else:
            self.q = q / norm
        return self

    @property
    def scalar(self) -> float:
        """Scalar part (q0)."""
        return float(self.q[0])

    @property
    def vector(self) -> np.ndarray:
        """Vector part [q1, q2, q3]."""
        return np.asarray(self.q[1:4], dtype=float)

    def conjugate(self) -> 'Quaternion':
        """Return q* = [q0, -q1, -q2, -q3]."""
        return Quaternion(np.hstack([self.q[0], -self.q[1], -self.q[2], -self.q[3]]))

    def multiply(self, other: 'Quaternion') -> 'Quaternion':
        """Hamilton product self * other."""
        a0, a1, a2, a3 = self.q
        b0, b1, b2, b3 = other.q

        return Quaternion(np.array([
            a0*b0 - a1*b1 - a2*b2 - a3*b3,
            a0*b1 + a1*b0 + a2*b3 - a3*b2,
            a0*b2 - a1*b3 + a2*b0 + a3*b1,
            a0*b3 + a1*b2 - a2*b1 + a3*b0,
        ]))

    def __mul__(self, other: 'Quaternion') -> 'Quaternion':
        return self.multiply(other)

    def rotate_vector(self, v: np.ndarray) -> np.ndarray:
        """
        Rotate a body-frame vector into the inertial frame.

        Sandwich product v' = q v q*, expanded as
        v' = v + 2 q0 (u x v) + 2 u x (u x v) with u the vector part.
        """
        v = np.asarray(v, dtype=float)
        u = self.vector
        uv = np.cross(u, v)
        uuv = np.cross(u, uv)
        return v + 2.0 * self.scalar * uv + 2.0 * uuv

    def inverse_rotate_vector(self, v: np.ndarray) -> np.ndarray:
        """Rotate an inertial-frame vector into the body frame."""
        return self.conjugate().rotate_vector(v)

    def to_rotation_matrix(self) -> np.ndarray:
        """
        Direction cosine matrix, body to inertial.

        Returns:
        --------
        R : np.ndarray, shape (3, 3)
            v_inertial = R @ v_body; the transpose maps inertial to body.
        """
        q0, q1, q2, q3 = self.q
        return np.array([
            [1 - 2*(q2**2 + q3**2), 2*(q1*q2 - q0*q3),     2*(q1*q3 + q0*q2)],
            [2*(q1*q2 + q0*q3),     1 - 2*(q1**2 + q3**2), 2*(q2*q3 - q0*q1)],
            [2*(q1*q3 - q0*q2),     2*(q2*q3 + q0*q1),     1 - 2*(q1**2 + q2**2)],
        ])

    def to_euler_angles(self) -> Tuple[float, float, float]:
        """
        Convert to Euler angles (roll, pitch, yaw) in radians.

        Pitch is clamped to +/-90 deg at gimbal lock instead of returning NaN.
        """
        q0, q1, q2, q3 = self.q

        phi = np.arctan2(2*(q0*q1 + q2*q3), 1 - 2*(q1**2 + q2**2))

        sin_theta = 2*(q0*q2 - q3*q1)
        if abs(sin_theta) >= 1.0:
            theta = np.copysign(np.pi / 2, sin_theta)
        else:
            theta = np.arcsin(sin_theta)

        psi = np.arctan2(2*(q0*q3 + q1*q2), 1 - 2*(q2**2 + q3**2))

        return float(phi), float(theta), float(psi)

    def integrate(self, omega: np.ndarray, dt: float) -> 'Quaternion':
        """
        First-order propagation with body rates omega = [p, q, r] (rad/s).

        q_dot = 0.5 * Omega(omega) * q, result renormalized.
        """
        p, q_rate, r = omega

        Omega = np.array([
            [0,  -p,  -q_rate,  -r],
            [p,   0,   r,  -q_rate],
            [q_rate,  -r,   0,   p],
            [r,   q_rate,  -p,   0]
        ])

        q_new = self.q + 0.5 * Omega @ self.q * dt
        return Quaternion(q_new).normalize()

    @staticmethod
    def from_euler_angles(phi: float, theta: float, psi: float) -> 'Quaternion':
        """
        Create quaternion from Euler angles.

        Parameters:
        -----------
        phi : float
            Roll angle (radians)
        theta : float
            Pitch angle (radians)
        psi : float
            Yaw angle (radians)
        """
        cr, sr = np.cos(phi / 2.0), np.sin(phi / 2.0)
        cp, sp = np.cos(theta / 2.0), np.sin(theta / 2.0)
        cy, sy = np.cos(psi / 2.0), np.sin(psi / 2.0)

        return Quaternion(np.array([
            cr*cp*cy + sr*sp*sy,
            sr*cp*cy - cr*sp*sy,
            cr*sp*cy + sr*cp*sy,
            cr*cp*sy - sr*sp*cy,
        ]))

    def __repr__(self) -> str:
        return f"Quaternion({self.q})"

    def __str__(self) -> str:
        phi, theta, psi = self.to_euler_angles()
        return (f"Quaternion: q={self.q}\n"
                f"  Roll:  {np.degrees(phi):7.2f}°\n"
                f"  Pitch: {np.degrees(theta):7.2f}°\n"
                f"  Yaw:   {np.degrees(psi):7.2f}°")
