"""
Aircraft aggregate and the simulator tick loop.
"""

from .aircraft import Aircraft
from .simulator import ControlInput, FlightSimulator, FlightSnapshot

__all__ = ['Aircraft', 'ControlInput', 'FlightSimulator', 'FlightSnapshot']
