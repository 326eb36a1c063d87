"""
International Standard Atmosphere (ISA) model

Provides atmospheric properties as a function of altitude:
- Temperature
- Pressure
- Density
- Speed of sound

Units: SI (meters, kg/m³, Pa, Kelvin)
"""

import numpy as np


class StandardAtmosphere:
    """
    ISA model from sea level to 20 km with an optional temperature offset.

    Parameters
    ----------
    altitude : float
        Geopotential altitude in meters above MSL
    temperature_offset : float
        Deviation from ISA temperature (K), e.g. +15 for an ISA+15 hot day
    humidity : float
        Relative humidity 0-1 (carried for the engine environment)

    Notes
    -----
    Two layers:
    - Troposphere: 0 - 11,000 m (temperature decreases linearly)
    - Lower Stratosphere: 11,000 - 20,000 m (isothermal)
    """

    T0 = 288.15      # K
    P0 = 101325.0    # Pa
    rho0 = 1.225     # kg/m³

    R = 287.05287    # J/(kg·K)
    gamma = 1.4
    g0 = 9.80665

    h_trop = 11000.0
    h_max = 20000.0
    lapse_trop = -0.0065  # K/m

    def __init__(self, altitude: float = 0.0, temperature_offset: float = 0.0,
                 humidity: float = 0.5):
        self.temperature_offset = temperature_offset
        self.humidity = humidity
        self.update(altitude)

    def _compute_properties(self):
        """Compute all atmospheric properties at current altitude."""
        h = float(np.clip(self.altitude, 0.0, self.h_max))

        T_std = self.isa_temperature(h)
        exponent = -self.g0 / (self.lapse_trop * self.R)

        if h <= self.h_trop:
            self.pressure = self.P0 * (T_std / self.T0)**exponent
        else:
            T_trop = self.T0 + self.lapse_trop * self.h_trop
            P_trop = self.P0 * (T_trop / self.T0)**exponent
            self.pressure = P_trop * np.exp(-self.g0 * (h - self.h_trop) / (self.R * T_trop))

        # Offset applies to the actual air, pressure stays on the standard profile
        self.temperature = T_std + self.temperature_offset
        self.density = self.pressure / (self.R * self.temperature)
        self.speed_of_sound = np.sqrt(self.gamma * self.R * self.temperature)

    def update(self, altitude: float):
        """
        Update atmospheric properties for a new altitude.

        Parameters
        ----------
        altitude : float
            New altitude in meters
        """
        self.altitude = float(altitude) if np.isfinite(altitude) else 0.0
        self._compute_properties()

    @classmethod
    def isa_temperature(cls, altitude: float) -> float:
        """Standard-day temperature (K) at altitude (m)."""
        h = float(np.clip(altitude, 0.0, cls.h_max))
        return cls.T0 + cls.lapse_trop * min(h, cls.h_trop)

    @classmethod
    def isa_temperature_celsius(cls, altitude: float) -> float:
        return cls.isa_temperature(altitude) - 273.15

    @property
    def temperature_celsius(self) -> float:
        return self.temperature - 273.15

    def get_mach_number(self, velocity: float) -> float:
        """Mach number for a true airspeed in m/s."""
        return velocity / self.speed_of_sound

    def get_dynamic_pressure(self, velocity: float) -> float:
        """Dynamic pressure q = 0.5 * rho * V² (Pa)."""
        return 0.5 * self.density * velocity**2

    def get_properties(self) -> dict:
        return {
            'altitude': self.altitude,
            'temperature': self.temperature,
            'temperature_C': self.temperature_celsius,
            'pressure': self.pressure,
            'density': self.density,
            'speed_of_sound': self.speed_of_sound,
            'humidity': self.humidity,
        }

    def __repr__(self):
        return (f"StandardAtmosphere(altitude={self.altitude:.0f} m, "
                f"T={self.temperature_celsius:.1f}°C, "
                f"P={self.pressure:.0f} Pa, "
                f"rho={self.density:.4f} kg/m³)")
