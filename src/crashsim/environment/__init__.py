"""
Environment models for flight simulation.

This module provides the atmospheric model used by the engines and airframe.
"""

from .atmosphere import StandardAtmosphere

__all__ = ['StandardAtmosphere']
