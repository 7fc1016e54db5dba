"""
Solar sail thrust model.

The sail produces a force F = 2 P(r) A_eff cos^2(yaw) cos^2(pitch) rho along
a direction built from the local radial/transverse/normal basis.  Inputs are
SI (m^2, kg, N/m^2); accelerations are returned in AU/day^2.
"""
import math
from typing import NamedTuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from sailnav.constants import (
    ACCEL_CONVERSION,
    DEFAULT_SAIL_AREA,
    DEFAULT_SAIL_REFLECTIVITY,
    DEFAULT_SAIL_YAW,
    MIN_PRESSURE_DISTANCE,
    MU_SUN,
    SOLAR_PRESSURE_1AU,
)

ECLIPTIC_NORMAL = np.array([0.0, 0.0, 1.0])
MIN_ANGULAR_MOMENTUM = 1e-10


class SailState(BaseModel):
    """
    Geometry and orientation of a ship's solar sail.

    Read-only to the physics core; control input replaces the whole record.
    """
    model_config = ConfigDict(frozen=True)

    area: float = Field(DEFAULT_SAIL_AREA, ge=0.0, description="Sail area (m^2)")
    reflectivity: float = Field(DEFAULT_SAIL_REFLECTIVITY, ge=0.0, le=1.0,
                                description="Fraction of incident light reflected")
    deployment: float = Field(1.0, ge=0.0, le=1.0, description="Deployed fraction of the sail")
    condition: float = Field(1.0, ge=0.0, le=1.0, description="Sail health fraction")
    yaw: float = Field(DEFAULT_SAIL_YAW, description="In-plane angle from the sun line (rad)")
    pitch: float = Field(0.0, description="Out-of-plane angle (rad)")
    sail_count: int = Field(1, ge=1, description="Number of identical sails (thrust multiplier)")

    @property
    def effective_area(self) -> float:
        return self.area * self.deployment * self.condition

    @property
    def is_active(self) -> bool:
        return self.effective_area > 0.0 and self.reflectivity > 0.0

    @staticmethod
    def from_percent(area: float = DEFAULT_SAIL_AREA,
                     reflectivity: float = DEFAULT_SAIL_REFLECTIVITY,
                     deployment_percent: float = 100.0,
                     condition_percent: float = 100.0,
                     yaw: float = DEFAULT_SAIL_YAW,
                     pitch: float = 0.0,
                     sail_count: int = 1) -> "SailState":
        """Build a sail from percentage-style deployment and condition values."""
        return SailState(
            area=area,
            reflectivity=reflectivity,
            deployment=deployment_percent / 100.0,
            condition=condition_percent / 100.0,
            yaw=yaw,
            pitch=pitch,
            sail_count=sail_count,
        )


class RTNComponents(NamedTuple):
    R: float
    T: float
    N: float


def solar_pressure(distance: float) -> float:
    """Radiation pressure (N/m^2) at ``distance`` AU; inverse square, floored at 0.01 AU."""
    d = max(distance, MIN_PRESSURE_DISTANCE)
    return SOLAR_PRESSURE_1AU / (d * d)


def rtn_basis(r, v) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Radial, transverse and orbit-normal unit vectors.

    The orbit normal falls back to the ecliptic normal when r x v vanishes.
    """
    r = np.asarray(r, dtype=float)
    radial = r / np.linalg.norm(r)
    h = np.cross(r, np.asarray(v, dtype=float))
    h_mag = np.linalg.norm(h)
    normal = h / h_mag if h_mag > MIN_ANGULAR_MOMENTUM else ECLIPTIC_NORMAL
    transverse = np.cross(normal, radial)
    t_mag = np.linalg.norm(transverse)
    if t_mag > 0.0:
        transverse = transverse / t_mag
    return radial, transverse, normal


def sail_thrust_direction(r, v, yaw: float, pitch: float = 0.0) -> np.ndarray:
    """
    Unit thrust direction cos(pitch)[cos(yaw) R + sin(yaw) T] + sin(pitch) N.
    """
    radial, transverse, normal = rtn_basis(r, v)
    in_plane = math.cos(yaw) * radial + math.sin(yaw) * transverse
    return math.cos(pitch) * in_plane + math.sin(pitch) * normal


def sail_force(sail: SailState, distance_from_sun: float) -> float:
    """Thrust magnitude in newtons."""
    cos_yaw = math.cos(sail.yaw)
    cos_pitch = math.cos(sail.pitch)
    return (2.0 * solar_pressure(distance_from_sun) * sail.effective_area
            * cos_yaw**2 * cos_pitch**2 * sail.reflectivity * sail.sail_count)


def solar_sail_acceleration(sail: SailState, r, v, distance_from_sun: float, mass: float) -> np.ndarray:
    """
    Calculate solar sail acceleration.

    Args:
        sail: sail geometry and orientation
        r: heliocentric position (AU), used for the thrust basis
        v: heliocentric velocity (AU/day)
        distance_from_sun: distance used for the radiation pressure (AU)
        mass: ship mass (kg)

    Returns:
        acceleration vector (AU/day^2)
    """
    if not mass > 0.0:
        raise ValueError(f"Ship mass must be positive, got {mass}")
    if not sail.is_active:
        return np.zeros(3)

    accel_ms2 = sail_force(sail, distance_from_sun) / mass
    return accel_ms2 * ACCEL_CONVERSION * sail_thrust_direction(r, v, sail.yaw, sail.pitch)


def characteristic_acceleration(area: float, reflectivity: float, mass: float) -> float:
    """Face-on sail acceleration at 1 AU (AU/day^2)."""
    if not mass > 0.0:
        raise ValueError(f"Ship mass must be positive, got {mass}")
    return 2.0 * SOLAR_PRESSURE_1AU * area * reflectivity / mass * ACCEL_CONVERSION


def ecliptic_to_rtn(vec, r, v) -> RTNComponents:
    """Project an ecliptic-frame vector onto the local RTN axes."""
    radial, transverse, normal = rtn_basis(r, v)
    vec = np.asarray(vec, dtype=float)
    return RTNComponents(float(vec @ radial), float(vec @ transverse), float(vec @ normal))


def optimal_sail_angle() -> float:
    """Cone angle arctan(1/sqrt(2)) (~35.26 deg) that maximises transverse thrust."""
    return math.atan(1.0 / math.sqrt(2.0))


def estimate_delta_a_per_orbit(a: float, char_accel: float, sail_angle: float, mu: float = MU_SUN) -> float:
    """
    Approximate change in semi-major axis over one circular orbit (AU).

    Uses the average tangential component of an inverse-square sail
    acceleration with a fixed cone angle.
    """
    period = 2.0 * math.pi * math.sqrt(a**3 / mu)
    tangential = char_accel / (a * a) * math.cos(sail_angle) * math.sin(sail_angle)
    h = math.sqrt(mu * a)
    return 2.0 * a * a / h * tangential * period
