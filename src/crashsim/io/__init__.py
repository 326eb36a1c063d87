"""
Airframe configuration loading.
"""

from .config import AirframeConfig, available_airframes, load_airframe, load_airframe_config

__all__ = ['AirframeConfig', 'available_airframes', 'load_airframe', 'load_airframe_config']
