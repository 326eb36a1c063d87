"""
Aerodynamic models for 6-DOF flight dynamics.

Provides:
- Base aerodynamic model interface
- Linear stability-derivative model with flaps, gear, airbrake and stall
"""

import numpy as np
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from typing import Tuple

from .controls import ControlState
from .state import RigidBodyState
from .units import RHO0


class AeroModel(ABC):
    """
    Base class for aerodynamic models.

    Provides interface for computing forces and moments
    given aircraft state.
    """

    @abstractmethod
    def compute_forces_moments(self, state: RigidBodyState, controls: ControlState,
                               density: float = RHO0) -> Tuple[np.ndarray, np.ndarray]:
        """
        Compute aerodynamic forces and moments.

        Parameters:
        -----------
        state : RigidBodyState
            Current aircraft state
        controls : ControlState
            Normalized control positions
        density : float
            Air density (kg/m³)

        Returns:
        --------
        forces : np.ndarray, shape (3,)
            Forces in body frame [Fx, Fy, Fz] (N)
        moments : np.ndarray, shape (3,)
            Moments in body frame [L, M, N] (N·m)
        """
        pass


@dataclass
class AeroCoefficients:
    """
    Stability and control derivatives (per radian).

    Control derivatives are in pilot sense, so a positive elevator
    derivative Cm_de pitches the nose up.
    """

    CL_0: float = 0.25
    CL_alpha: float = 5.5
    CL_q: float = 4.0
    CL_de: float = 0.3
    CL_flaps: float = 0.9
    CL_max: float = 1.5
    CL_max_flaps: float = 0.8

    CD_0: float = 0.022
    K_induced: float = 0.045
    CD_gear: float = 0.015
    CD_flaps: float = 0.05
    CD_airbrake: float = 0.06

    CY_beta: float = -0.6
    CY_dr: float = 0.2

    Cl_beta: float = -0.1
    Cl_p: float = -0.45
    Cl_r: float = 0.1
    Cl_da: float = 0.12
    Cl_dr: float = 0.01

    Cm_0: float = 0.03
    Cm_alpha: float = -1.0
    Cm_q: float = -15.0
    Cm_de: float = 1.0
    Cm_flaps: float = -0.05

    Cn_beta: float = 0.12
    Cn_p: float = -0.03
    Cn_r: float = -0.2
    Cn_da: float = -0.005
    Cn_dr: float = 0.08

    @classmethod
    def from_dict(cls, data: dict) -> 'AeroCoefficients':
        names = {f.name for f in fields(cls)}
        return cls(**{k: float(v) for k, v in (data or {}).items() if k in names})


class LinearAeroModel(AeroModel):
    """
    Linear aerodynamic model using stability derivatives.

    Lift follows the linear slope up to CL_max, then fades toward a
    flat-plate curve; drag gains a flat-plate term past the stall.
    """

    POST_STALL_DECAY = 0.1   # rad

    def __init__(self, S_ref: float, c_ref: float, b_ref: float,
                 coefficients: AeroCoefficients = None,
                 max_elevator: float = np.radians(25),
                 max_aileron: float = np.radians(20),
                 max_rudder: float = np.radians(30)):
        """
        Initialize linear aero model.

        Parameters:
        -----------
        S_ref : float
            Reference area (m²)
        c_ref : float
            Reference chord (m)
        b_ref : float
            Reference span (m)
        coefficients : AeroCoefficients, optional
        max_elevator, max_aileron, max_rudder : float
            Deflection at full control input (rad)
        """
        self.S_ref = S_ref
        self.c_ref = c_ref
        self.b_ref = b_ref
        self.coefficients = coefficients or AeroCoefficients()
        self.max_elevator = max_elevator
        self.max_aileron = max_aileron
        self.max_rudder = max_rudder

    def stall_alpha(self, flaps: float = 0.0) -> float:
        """Angle of attack at CL_max for a flap setting (rad)."""
        c = self.coefficients
        cl_max = c.CL_max + c.CL_max_flaps * flaps
        return (cl_max - c.CL_0 - c.CL_flaps * flaps) / c.CL_alpha

    def lift_coefficient(self, alpha: float, flaps: float = 0.0) -> float:
        c = self.coefficients
        linear = c.CL_0 + c.CL_flaps * flaps + c.CL_alpha * alpha

        alpha_stall = self.stall_alpha(flaps)
        if -alpha_stall <= alpha <= alpha_stall:
            return linear

        cl_stall = c.CL_0 + c.CL_flaps * flaps + c.CL_alpha * np.sign(alpha) * alpha_stall
        blend = np.exp(-(abs(alpha) - alpha_stall) / self.POST_STALL_DECAY)
        flat_plate = 1.1 * np.sin(2.0 * alpha)
        return blend * cl_stall + (1.0 - blend) * flat_plate

    def compute_forces_moments(self, state: RigidBodyState, controls: ControlState,
                               density: float = RHO0) -> Tuple[np.ndarray, np.ndarray]:
        """Compute forces and moments using linear stability derivatives."""
        c = self.coefficients

        delta_e = (controls.elevator + controls.trim) * self.max_elevator
        delta_a = controls.aileron * self.max_aileron
        delta_r = controls.rudder * self.max_rudder
        flaps = controls.flaps

        V = state.airspeed
        if V < 1.0:
            V = 1.0
        q_bar = 0.5 * density * V**2

        alpha = state.alpha
        beta = state.beta

        # Non-dimensional angular rates
        p, q, r = state.angular_rates
        p_hat = p * self.b_ref / (2 * V)
        q_hat = q * self.c_ref / (2 * V)
        r_hat = r * self.b_ref / (2 * V)

        CL = self.lift_coefficient(alpha, flaps) + c.CL_q * q_hat + c.CL_de * delta_e
        CD = (c.CD_0 + c.K_induced * CL**2
              + c.CD_gear * controls.gear
              + c.CD_flaps * flaps
              + c.CD_airbrake * controls.airbrake)
        if abs(alpha) > self.stall_alpha(flaps):
            CD += 1.2 * np.sin(alpha)**2
        CY = c.CY_beta * beta + c.CY_dr * delta_r

        Cl = c.Cl_beta * beta + c.Cl_p * p_hat + c.Cl_r * r_hat + \
             c.Cl_da * delta_a + c.Cl_dr * delta_r
        Cm = c.Cm_0 + c.Cm_alpha * alpha + c.Cm_q * q_hat + c.Cm_de * delta_e + c.Cm_flaps * flaps
        Cn = c.Cn_beta * beta + c.Cn_p * p_hat + c.Cn_r * r_hat + \
             c.Cn_da * delta_a + c.Cn_dr * delta_r

        L_aero = q_bar * self.S_ref * CL
        D = q_bar * self.S_ref * CD
        Y = q_bar * self.S_ref * CY

        # Wind to body
        Fx = -D * np.cos(alpha) + L_aero * np.sin(alpha)
        Fy = Y
        Fz = -D * np.sin(alpha) - L_aero * np.cos(alpha)

        forces = np.array([Fx, Fy, Fz])
        moments = np.array([
            q_bar * self.S_ref * self.b_ref * Cl,
            q_bar * self.S_ref * self.c_ref * Cm,
            q_bar * self.S_ref * self.b_ref * Cn,
        ])

        return forces, moments

    def trim_alpha(self, weight: float, airspeed: float, density: float = RHO0,
                   flaps: float = 0.0) -> float:
        """Angle of attack for 1 g level flight (rad), limited to the stall angle."""
        c = self.coefficients
        q_bar = 0.5 * density * max(airspeed, 1.0)**2
        cl_required = weight / (q_bar * self.S_ref)
        alpha = (cl_required - c.CL_0 - c.CL_flaps * flaps) / c.CL_alpha
        return float(np.clip(alpha, -self.stall_alpha(flaps), self.stall_alpha(flaps)))
