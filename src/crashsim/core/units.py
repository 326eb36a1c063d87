"""Unit conversions between the SI simulation core and cockpit display units."""

M_TO_FT = 3.28084
MS_TO_KT = 1.943844
MS_TO_FPM = 196.8504

# Standard gravity (m/s^2)
G0 = 9.80665

# Sea-level ISA density (kg/m^3)
RHO0 = 1.225
