"""
Core 6-DOF flight dynamics components.

Math primitives, rigid-body state and dynamics, the RK4 integrator, the
aerodynamic model and the flight physics service built from them.
"""

from .aerodynamics import AeroCoefficients, AeroModel, LinearAeroModel
from .controls import ControlState
from .dynamics import AircraftDynamics
from .geodesy import great_circle_distance, initial_bearing
from .integrator import RK4Integrator
from .physics import FlightPhysics
from .quaternion import Quaternion
from .severity import Severity
from .state import RigidBodyState
from .vector import Vector3

__all__ = [
    'AeroCoefficients',
    'AeroModel',
    'AircraftDynamics',
    'ControlState',
    'FlightPhysics',
    'LinearAeroModel',
    'Quaternion',
    'RK4Integrator',
    'RigidBodyState',
    'Severity',
    'Vector3',
    'great_circle_distance',
    'initial_bearing',
]
