from .aircraft_systems import AircraftSystems
from .autopilot import Autopilot, AutopilotCommand, AutopilotTargets, PIDController

__all__ = ['AircraftSystems', 'Autopilot', 'AutopilotCommand', 'AutopilotTargets', 'PIDController']
