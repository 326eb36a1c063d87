"""
Airframe Configuration System

Provides YAML-based configuration loading for airframe mass properties,
aerodynamics and engine installation, and builds the simulation objects
from them.
"""

import logging
from importlib import resources
from typing import Any, Dict, List

import numpy as np
import yaml

from ..core.aerodynamics import AeroCoefficients, LinearAeroModel
from ..core.dynamics import AircraftDynamics
from ..core.physics import FlightPhysics
from ..exceptions import ConfigurationError
from ..propulsion.engine import EngineSpec
from ..propulsion.layouts import DEFAULT_LAYOUT_FOR_COUNT
from ..propulsion.manager import PropulsionManager

logger = logging.getLogger(__name__)

AIRFRAMES_RESOURCE = 'airframes.yaml'

ENGINE_SPEC_KEYS = ('engine_type', 'sfc', 'idle_fuel_flow', 'n1_idle', 'n1_max',
                    'n2_base', 'egt_idle', 'egt_max', 'vibration_amplitude')


class AirframeConfig:
    """
    Airframe configuration loaded from YAML.

    Attributes
    ----------
    name : str
        Display name
    empty_mass : float
        Operating empty mass (kg)
    fuel : float
        Initial fuel (kg)
    inertia : ndarray
        Inertia tensor (3x3, kg·m²)
    S_ref, c_ref, b_ref : float
        Reference geometry (m², m, m)
    layout : str
        Engine layout name
    engine_count : int
    """

    def __init__(self, config_dict: Dict[str, Any]):
        """
        Parameters
        ----------
        config_dict : dict
            Airframe dictionary, optionally wrapped in an 'aircraft' key
        """
        if not isinstance(config_dict, dict):
            raise ConfigurationError("Airframe configuration must be a mapping")
        self.raw_config = config_dict
        self._parse_config()

    def _parse_config(self):
        aircraft = self.raw_config.get('aircraft', self.raw_config)

        self.name = aircraft.get('name', 'Unnamed Airframe')

        mass = aircraft.get('mass', {})
        try:
            self.empty_mass = float(mass['empty'])
        except (KeyError, TypeError, ValueError):
            raise ConfigurationError(f"{self.name}: mass.empty is required") from None
        self.fuel = float(mass.get('fuel', 0.0))
        self.max_fuel = float(mass.get('max_fuel', self.fuel))
        if self.empty_mass <= 0.0 or self.fuel < 0.0 or self.fuel > self.max_fuel:
            raise ConfigurationError(f"{self.name}: inconsistent mass/fuel values")

        inertia = {k: float(v) for k, v in (aircraft.get('inertia') or {}).items()}
        self.inertia = np.array([
            [inertia.get('Ixx', 1.0e6), 0.0, -inertia.get('Ixz', 0.0)],
            [0.0, inertia.get('Iyy', 3.0e6), 0.0],
            [-inertia.get('Ixz', 0.0), 0.0, inertia.get('Izz', 4.0e6)],
        ])

        reference = aircraft.get('reference', {})
        self.S_ref = float(reference.get('S', 120.0))
        self.c_ref = float(reference.get('c', 4.0))
        self.b_ref = float(reference.get('b', 34.0))

        self.aerodynamics = aircraft.get('aerodynamics', {}) or {}

        self.propulsion = aircraft.get('propulsion', {}) or {}
        self.engine_count = int(self.propulsion.get('engine_count', 2))
        self.layout = self.propulsion.get('layout') or DEFAULT_LAYOUT_FOR_COUNT.get(self.engine_count)
        if self.layout is None:
            raise ConfigurationError(f"{self.name}: no layout for {self.engine_count} engines")

    @property
    def max_takeoff_weight(self) -> float:
        return self.empty_mass + self.max_fuel

    def create_dynamics(self) -> AircraftDynamics:
        return AircraftDynamics(self.empty_mass + self.fuel, self.inertia)

    def create_aero_model(self) -> LinearAeroModel:
        """Linear aero model with the configured derivatives overriding defaults."""
        limits = self.aerodynamics
        return LinearAeroModel(
            S_ref=self.S_ref,
            c_ref=self.c_ref,
            b_ref=self.b_ref,
            coefficients=AeroCoefficients.from_dict(self.aerodynamics.get('derivatives', {})),
            max_elevator=np.radians(limits.get('max_elevator_deg', 25.0)),
            max_aileron=np.radians(limits.get('max_aileron_deg', 20.0)),
            max_rudder=np.radians(limits.get('max_rudder_deg', 30.0)),
        )

    def create_engine_spec(self) -> EngineSpec:
        values = {k: self.propulsion[k] if k == 'engine_type' else float(self.propulsion[k])
                  for k in ENGINE_SPEC_KEYS if k in self.propulsion}
        return EngineSpec(**values)

    def create_propulsion_manager(self, rng: np.random.Generator = None) -> PropulsionManager:
        """
        Raises
        ------
        ConfigurationError
            engine_count does not match the layout
        """
        return PropulsionManager(
            layout=self.layout,
            engine_count=self.engine_count,
            engine_spec=self.create_engine_spec(),
            max_thrust=self.propulsion.get('max_thrust'),
            torque_scale=float(self.propulsion.get('torque_scale', 1.0)),
            rng=rng,
        )

    def create_physics(self, terrain_elevation: float = 0.0,
                       temperature_offset: float = 0.0) -> FlightPhysics:
        return FlightPhysics(
            dynamics=self.create_dynamics(),
            aero_model=self.create_aero_model(),
            empty_mass=self.empty_mass,
            fuel_kg=self.fuel,
            max_fuel_kg=self.max_fuel,
            terrain_elevation=terrain_elevation,
            temperature_offset=temperature_offset,
        )

    def __repr__(self):
        return (f"AirframeConfig(name='{self.name}', empty_mass={self.empty_mass:.0f}, "
                f"engines={self.engine_count} ({self.layout}))")


def load_airframe_config(yaml_file: str) -> AirframeConfig:
    """
    Load an airframe configuration from a YAML file.

    Parameters
    ----------
    yaml_file : str
        Path to YAML configuration file

    Returns
    -------
    AirframeConfig

    Examples
    --------
    >>> config = load_airframe_config('my_airframe.yaml')
    >>> propulsion = config.create_propulsion_manager()
    """
    with open(yaml_file, 'r') as f:
        config_dict = yaml.safe_load(f)

    return AirframeConfig(config_dict)


def _packaged_airframes() -> Dict[str, Any]:
    text = resources.files(__package__).joinpath('data').joinpath(AIRFRAMES_RESOURCE).read_text()
    return yaml.safe_load(text).get('airframes', {})


def available_airframes() -> List[str]:
    return sorted(_packaged_airframes())


def load_airframe(name: str) -> AirframeConfig:
    """
    Load one of the packaged airframes by model name (e.g. 'a320').

    Raises
    ------
    ConfigurationError
        Unknown model name
    """
    airframes = _packaged_airframes()
    key = name.strip().lower()
    if key not in airframes:
        raise ConfigurationError(
            f"Unknown airframe '{name}' (available: {', '.join(sorted(airframes))})"
        )
    logger.debug("Loading packaged airframe %s", key)
    return AirframeConfig(airframes[key])
