"""
Orbital elements representation for the ship and celestial bodies.
"""
import math
from enum import Enum
from typing import NamedTuple

from sailnav.constants import J2000, MU_SUN


# Eccentricity bands used when an orbit needs a human-facing classification.
CIRCULAR_LIMIT = 1e-6
ELLIPTIC_LIMIT = 0.999
PARABOLIC_LIMIT = 1.001


class Conic(Enum):
    """Conic family that selects the anomaly solver (elliptic for e < 1)."""
    ELLIPTIC = "elliptic"
    HYPERBOLIC = "hyperbolic"


class OrbitType(Enum):
    CIRCULAR = "circular"
    ELLIPTIC = "elliptic"
    PARABOLIC = "parabolic"
    HYPERBOLIC = "hyperbolic"


def classify_orbit(e: float) -> OrbitType:
    """Classify an eccentricity into the circular/elliptic/parabolic/hyperbolic bands."""
    if e < CIRCULAR_LIMIT:
        return OrbitType.CIRCULAR
    if e < ELLIPTIC_LIMIT:
        return OrbitType.ELLIPTIC
    if e < PARABOLIC_LIMIT:
        return OrbitType.PARABOLIC
    return OrbitType.HYPERBOLIC


def conic_of(e: float) -> Conic:
    return Conic.HYPERBOLIC if e >= 1.0 else Conic.ELLIPTIC


class OrbitalElements(NamedTuple):
    """
    Keplerian orbital elements of a ship or body about its frame's central body.

    All angular quantities are in radians, distances in AU and times in days.
    The element set is the system of record for every orbit: it is never
    partially updated, a new set is built with ``_replace`` or by the state
    vector converter.

    Attributes:
        a: Semi-major axis (AU), negative for hyperbolic orbits
        e: Eccentricity (>= 0, unbounded)
        i: Inclination relative to the ecliptic (radians)
        Omega: Longitude of the ascending node (radians)
        omega: Argument of periapsis (radians)
        M0: Mean anomaly at epoch (radians)
        epoch: Julian date at which M0 applies
        mu: Gravitational parameter of the central body (AU^3/day^2)

    Note:
        - For elliptical orbits: a > 0, 0 <= e < 1
        - For hyperbolic orbits: a < 0, e > 1
    """
    a: float  # semi-major axis (AU)
    e: float  # eccentricity
    i: float  # inclination (rad)
    Omega: float  # longitude of ascending node (rad)
    omega: float  # argument of periapsis (rad)
    M0: float  # mean anomaly at epoch (rad)
    epoch: float = J2000  # Julian date
    mu: float = MU_SUN  # AU^3/day^2

    def periapsis(self) -> float:
        """Periapsis distance a(1 - e), positive for both conic families."""
        return self.a * (1.0 - self.e)

    def apoapsis(self) -> float:
        """Apoapsis distance, or ``math.inf`` for open orbits."""
        if self.e >= 1.0:
            return math.inf
        return self.a * (1.0 + self.e)

    def semi_latus_rectum(self) -> float:
        return self.a * (1.0 - self.e**2)

    def orbit_type(self) -> OrbitType:
        return classify_orbit(self.e)

    def conic(self) -> Conic:
        return conic_of(self.e)

    def period(self) -> float:
        """Orbital period in days (``math.inf`` for unbound orbits)."""
        if self.e >= 1.0 or self.a <= 0.0:
            return math.inf
        return 2.0 * math.pi * math.sqrt(self.a**3 / self.mu)

    def is_finite(self) -> bool:
        return all(math.isfinite(x) for x in self)

    def validate(self) -> "OrbitalElements":
        """
        Check the element set describes a closed ellipse or a hyperbola.

        Raises ValueError for a zero semi-major axis, a negative eccentricity,
        a non-positive gravitational parameter, or a semi-major axis whose sign
        disagrees with the conic (a > 0 with e < 1, a < 0 with e > 1).
        Returns the elements unchanged so the call can be chained.
        """
        if self.mu <= 0.0:
            raise ValueError(f"Gravitational parameter must be positive, got {self.mu}")
        if self.e < 0.0:
            raise ValueError(f"Eccentricity must be non-negative, got {self.e}")
        if self.a == 0.0:
            raise ValueError("Semi-major axis must be non-zero")
        if (self.a > 0.0) != (self.e < 1.0):
            raise ValueError(f"Semi-major axis {self.a} is inconsistent with eccentricity {self.e}")
        return self
