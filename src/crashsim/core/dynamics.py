"""
6-DOF equations of motion.

Implements the rigid body dynamics equations:
- Translational dynamics (Newton's 2nd law) in the body frame
- Rotational dynamics (Euler's equations)
- Quaternion kinematics
"""

import numpy as np
from typing import Callable

from .state import RigidBodyState
from .units import G0


class AircraftDynamics:
    """
    6-DOF rigid body dynamics for aircraft.

    Equations of motion in body frame:
    - Forces: F + m*g_body = m * (v_dot + omega x v)
    - Moments: M = I * omega_dot + omega x (I * omega)
    - Kinematics: q_dot = 0.5 * Omega(omega) * q
    """

    def __init__(self, mass: float, inertia: np.ndarray):
        """
        Initialize aircraft dynamics.

        Parameters:
        -----------
        mass : float
            Aircraft mass (kg)
        inertia : np.ndarray, shape (3, 3)
            Inertia tensor in body frame (kg*m^2)
        """
        self.mass = mass
        self.inertia = np.asarray(inertia, dtype=float)
        self.inertia_inv = np.linalg.inv(self.inertia)
        self.g = G0

    def state_derivative(self, state: RigidBodyState, forces_moments: Callable) -> np.ndarray:
        """
        Compute state time derivative.

        Parameters:
        -----------
        state : RigidBodyState
            Current aircraft state
        forces_moments : Callable
            Returns (forces, moments) in body frame for a state,
            gravity excluded (N, N*m)

        Returns:
        --------
        state_dot : np.ndarray, shape (13,)
        """
        vel_body = state.velocity_body
        omega = state.angular_rates

        forces, moments = forces_moments(state)

        # Body to inertial
        R_b_to_i = state.q.to_rotation_matrix()

        # Gravity points down (+z) in NED
        g_body = R_b_to_i.T @ np.array([0.0, 0.0, self.g])

        vel_body_dot = forces / self.mass + g_body - np.cross(omega, vel_body)

        I_omega = self.inertia @ omega
        omega_dot = self.inertia_inv @ (moments - np.cross(omega, I_omega))

        pos_dot = R_b_to_i @ vel_body

        p, q_rate, r = omega
        Omega = np.array([
            [0,  -p,  -q_rate,  -r],
            [p,   0,   r,  -q_rate],
            [q_rate,  -r,   0,   p],
            [r,   q_rate,  -p,   0]
        ])
        q_dot = 0.5 * Omega @ state.q.q

        state_dot = np.zeros(13)
        state_dot[0:3] = pos_dot
        state_dot[3:6] = vel_body_dot
        state_dot[6:10] = q_dot
        state_dot[10:13] = omega_dot

        return state_dot
