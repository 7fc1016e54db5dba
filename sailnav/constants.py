"""
Physical constants for sailnav.

Units used throughout the package: AU for distance, days for time (Julian
date for absolute epochs), radians for angles, AU/day for velocity and
AU^3/day^2 for gravitational parameters.
"""

# Basic astronomical and time constants
KMPAU = 149597870.7  # km per AU
MPAU = KMPAU * 1000.0  # m per AU
DAY = 86400.0  # seconds per day
J2000 = 2451545.0  # Julian date of the J2000 epoch
MU_SUN = 2.9591220828559093e-4  # AU^3/day^2

# Unit conversions
ACCEL_CONVERSION = DAY**2 / MPAU  # m/s^2 -> AU/day^2
AU_PER_DAY_TO_KM_S = KMPAU / DAY  # ~1731.46

# Solar sail parameters
SOLAR_PRESSURE_1AU = 4.56e-6  # N/m^2 at 1 AU
MIN_PRESSURE_DISTANCE = 0.01  # AU, floor applied to the inverse-square law
DEFAULT_SHIP_MASS = 10000.0  # kg
DEFAULT_SAIL_AREA = 3.0e6  # m^2
DEFAULT_SAIL_REFLECTIVITY = 0.9
DEFAULT_SAIL_YAW = 0.6  # rad, close to the optimal cone angle
