"""
Great-circle helpers on a spherical Earth.

Used to place the aircraft and orient the initial heading along a route leg.
"""

import numpy as np

EARTH_RADIUS_M = 6371000.0


def great_circle_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Haversine distance between two geodetic points.

    Parameters
    ----------
    lat1, lon1, lat2, lon2 : float
        Latitudes/longitudes in degrees

    Returns
    -------
    float
        Distance in meters
    """
    phi1, phi2 = np.radians(lat1), np.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = np.radians(lon2 - lon1)

    a = np.sin(d_phi / 2)**2 + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2)**2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(max(0.0, 1 - a)))
    return float(EARTH_RADIUS_M * c)


def initial_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial true bearing from point 1 to point 2, degrees in [0, 360)."""
    phi1, phi2 = np.radians(lat1), np.radians(lat2)
    d_lambda = np.radians(lon2 - lon1)

    y = np.sin(d_lambda) * np.cos(phi2)
    x = np.cos(phi1) * np.sin(phi2) - np.sin(phi1) * np.cos(phi2) * np.cos(d_lambda)
    return float((np.degrees(np.arctan2(y, x)) + 360.0) % 360.0)
