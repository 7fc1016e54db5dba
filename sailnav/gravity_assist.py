"""
Patched-conic gravity assist helpers.
"""
import math
from typing import NamedTuple, Optional

import numpy as np

from sailnav.orbital_elements import OrbitalElements

ECLIPTIC_NORMAL = np.array([0.0, 0.0, 1.0])


class GravityAssist(NamedTuple):
    v_exit: np.ndarray  # heliocentric exit velocity (AU/day)
    delta_v: float  # magnitude of the velocity change (AU/day)
    turning_angle: float  # rad


def hyperbolic_excess_velocity(elements: OrbitalElements) -> float:
    """v_inf = sqrt(-mu/a) for a hyperbolic orbit, 0 for a bound one."""
    if elements.a >= 0.0 or elements.e < 1.0:
        return 0.0
    return math.sqrt(-elements.mu / elements.a)


def turning_angle(v_inf: float, r_p: float, mu: float) -> float:
    """
    Total deflection of a hyperbolic flyby.

    delta = 2 * asin(1 / (1 + r_p * v_inf^2 / mu))
    """
    if not mu > 0.0:
        raise ValueError(f"Gravitational parameter must be positive, got {mu}")
    if not r_p > 0.0:
        raise ValueError(f"Periapsis radius must be positive, got {r_p}")
    return 2.0 * math.asin(1.0 / (1.0 + r_p * v_inf**2 / mu))


def asymptotic_angle(e: float) -> float:
    """Angle from periapsis to the asymptote, arccos(-1/e); 0 for closed orbits."""
    if e < 1.0:
        return 0.0
    return math.acos(-1.0 / e)


def b_plane_radius(v_inf: float, r_p: float, mu: float) -> float:
    """Impact parameter B = sqrt(r_p^2 + 2 r_p mu / v_inf^2)."""
    return math.sqrt(r_p**2 + 2.0 * r_p * mu / v_inf**2)


def predict_gravity_assist(v_approach, r_p: float, v_planet, mu: float,
                           axis: Optional[np.ndarray] = None) -> GravityAssist:
    """
    Heliocentric exit velocity after an unpowered flyby.

    The planet-relative velocity is rotated by the turning angle about
    ``axis`` (the ecliptic normal by default) using Rodrigues' formula, so
    |v_inf| is preserved exactly.
    """
    v_approach = np.asarray(v_approach, dtype=float)
    v_planet = np.asarray(v_planet, dtype=float)
    v_rel = v_approach - v_planet
    v_inf = float(np.linalg.norm(v_rel))
    if v_inf < 1e-15:
        return GravityAssist(v_approach.copy(), 0.0, 0.0)

    delta = turning_angle(v_inf, r_p, mu)

    k = ECLIPTIC_NORMAL if axis is None else np.asarray(axis, dtype=float)
    k = k / np.linalg.norm(k)
    cos_d = math.cos(delta)
    sin_d = math.sin(delta)
    v_rot = v_rel * cos_d + np.cross(k, v_rel) * sin_d + k * float(k @ v_rel) * (1.0 - cos_d)

    v_exit = v_rot + v_planet
    return GravityAssist(v_exit, float(np.linalg.norm(v_exit - v_approach)), delta)
