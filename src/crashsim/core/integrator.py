"""
Fixed-step RK4 integrator for the 6-DOF state.
"""

import numpy as np
from typing import Callable

from .state import RigidBodyState


class RK4Integrator:
    """
    4th-order Runge-Kutta integrator with a bounded time step.

    Steps larger than max_dt are clamped; frame hitches on the caller side
    slow the simulation down instead of destabilizing it.
    """

    def __init__(self, dt: float = 0.01, max_dt: float = 0.05):
        """
        Parameters:
        -----------
        dt : float
            Default time step (seconds)
        max_dt : float
            Largest step ever taken (seconds)
        """
        self.max_dt = max_dt
        self.dt = min(dt, max_dt)

    def clamp_dt(self, dt: float = None) -> float:
        if dt is None:
            dt = self.dt
        if not np.isfinite(dt) or dt <= 0.0:
            return 0.0
        return min(float(dt), self.max_dt)

    def step(self, state: RigidBodyState, derivative_func: Callable,
             dt: float = None) -> RigidBodyState:
        """
        Advance state by one time step.

        Parameters:
        -----------
        state : RigidBodyState
            Current state
        derivative_func : Callable
            state_dot = f(state), np.ndarray shape (13,)
        dt : float, optional
            Step size, clamped to max_dt (default: self.dt)

        Returns:
        --------
        new_state : RigidBodyState
        """
        dt = self.clamp_dt(dt)
        if dt == 0.0:
            return state.copy()

        x = state.to_array()

        def stage(x_stage):
            s = RigidBodyState()
            s.from_array(x_stage)
            s.q.normalize()
            return s

        k1 = derivative_func(state)
        k2 = derivative_func(stage(x + 0.5 * dt * k1))
        k3 = derivative_func(stage(x + 0.5 * dt * k2))
        k4 = derivative_func(stage(x + dt * k3))

        x_new = x + (dt / 6.0) * (k1 + 2*k2 + 2*k3 + k4)

        return stage(x_new)
