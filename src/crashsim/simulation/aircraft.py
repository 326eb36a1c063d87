"""
Aircraft aggregate: one airframe's physics, propulsion, systems and autopilot.
"""

import logging

import numpy as np

from ..core.controls import ControlState
from ..core.physics import FlightPhysics
from ..propulsion.manager import PropulsionManager
from ..systems.aircraft_systems import AircraftSystems
from ..systems.autopilot import Autopilot

logger = logging.getLogger(__name__)


class Aircraft:
    """
    Everything the failure system and warning system act on.

    Parameters
    ----------
    name : str
    physics : FlightPhysics
    propulsion : PropulsionManager
    systems : AircraftSystems, optional
        Defaults to one generator and fire loop per engine
    autopilot : Autopilot, optional
    """

    def __init__(self, name: str, physics: FlightPhysics, propulsion: PropulsionManager,
                 systems: AircraftSystems = None, autopilot: Autopilot = None):
        self.name = name
        self.physics = physics
        self.propulsion = propulsion
        self.systems = systems or AircraftSystems(propulsion.engine_count)
        self.autopilot = autopilot or Autopilot()

    @classmethod
    def from_config(cls, config, rng: np.random.Generator = None,
                    terrain_elevation: float = 0.0) -> 'Aircraft':
        """
        Build an aircraft from an AirframeConfig.

        Parameters
        ----------
        config : AirframeConfig
        rng : numpy.random.Generator, optional
            Shared by every engine
        terrain_elevation : float
            Ground elevation (m MSL)
        """
        propulsion = config.create_propulsion_manager(rng)
        physics = config.create_physics(terrain_elevation=terrain_elevation)
        logger.debug("Built aircraft %s with %d engines", config.name, propulsion.engine_count)
        return cls(config.name, physics, propulsion)

    @property
    def controls(self) -> ControlState:
        return self.physics.controls

    @property
    def fuel_kg(self) -> float:
        return self.physics.fuel_kg

    @fuel_kg.setter
    def fuel_kg(self, value: float):
        self.physics.fuel_kg = value

    @property
    def engine_count(self) -> int:
        return self.propulsion.engine_count

    def __repr__(self) -> str:
        return f"Aircraft('{self.name}', {self.physics!r}, {self.propulsion!r})"
