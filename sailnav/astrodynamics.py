"""
Two-body conic solver.

Kepler's equation for both conic families, anomaly conversions and the
perifocal-to-ecliptic rotation.  Every function here is pure; elements are
evaluated at an explicit Julian date and nothing is cached.
"""
import logging
import math
from typing import NamedTuple

import numpy as np

from sailnav.cartesian_state import CartesianState
from sailnav.orbital_elements import (
    Conic,
    OrbitalElements,
    OrbitType,
    classify_orbit,
    conic_of,
)

logger = logging.getLogger(__name__)

TWO_PI = 2.0 * math.pi

CIRCULAR_SHORTCUT = 1e-10
KEPLER_TOL = 1e-12
KEPLER_MAX_ITER = 50
ATANH_CLAMP = 0.9999999
MIN_SEMI_LATUS_RECTUM = 1e-12
PARABOLIC_GAP = 1e-12


class ConicAnomaly(NamedTuple):
    """
    Position of an object along its conic at one instant.

    ``anomaly`` is the eccentric anomaly E for ``Conic.ELLIPTIC`` and the
    hyperbolic anomaly H for ``Conic.HYPERBOLIC``.
    """
    conic: Conic
    mean_anomaly: float
    anomaly: float
    true_anomaly: float


def wrap_two_pi(angle: float) -> float:
    """Wrap an angle into [0, 2pi)."""
    wrapped = angle % TWO_PI
    # Tiny negative inputs round up to exactly 2pi
    return 0.0 if wrapped >= TWO_PI else wrapped


def mean_motion(a: float, mu: float) -> float:
    """n = sqrt(mu / |a|^3), valid for negative (hyperbolic) a."""
    if mu <= 0.0:
        raise ValueError(f"Gravitational parameter must be positive, got {mu}")
    if a == 0.0:
        raise ValueError("Semi-major axis must be non-zero")
    return math.sqrt(mu / abs(a) ** 3)


def propagate_mean_anomaly(elements: OrbitalElements, t: float) -> float:
    """
    Mean anomaly at Julian date ``t``.

    Elliptic mean anomaly is wrapped to [0, 2pi).  Hyperbolic mean anomaly is
    not periodic and is returned unwrapped.
    """
    n = mean_motion(elements.a, elements.mu)
    M = elements.M0 + n * (t - elements.epoch)
    if elements.e < 1.0:
        M = wrap_two_pi(M)
    return M


def solve_kepler(M: float, e: float, tol: float = KEPLER_TOL, max_iter: int = KEPLER_MAX_ITER) -> float:
    """
    Solve Kepler's equation M = E - e*sin(E) for the eccentric anomaly E
    using Newton-Raphson iteration.

    Returns the last iterate if the tolerance is not met within ``max_iter``.
    """
    if e < CIRCULAR_SHORTCUT:
        return M

    E = M if e < 0.8 else math.pi
    for _ in range(max_iter):
        f = E - e * math.sin(E) - M
        fp = 1.0 - e * math.cos(E)
        delta = f / fp
        E -= delta
        if abs(delta) < tol:
            break
    return E


def solve_kepler_hyperbolic(M: float, e: float, tol: float = KEPLER_TOL, max_iter: int = KEPLER_MAX_ITER) -> float:
    """
    Solve the hyperbolic Kepler equation M = e*sinh(H) - H for H.

    Newton steps that grow to more than twice the previous step are halved,
    which keeps the iteration from running away for very eccentric orbits.
    """
    if abs(M) < 1.0:
        H = M
    else:
        H = math.copysign(math.log(2.0 * abs(M) / e), M)

    prev_delta = math.inf
    for _ in range(max_iter):
        f = e * math.sinh(H) - H - M
        fp = e * math.cosh(H) - 1.0
        if abs(fp) < 1e-15:
            break
        delta = f / fp
        if abs(delta) > 2.0 * abs(prev_delta):
            delta *= 0.5
        H -= delta
        if abs(delta) < tol:
            break
        prev_delta = delta
    return H


def eccentric_to_true_anomaly(E: float, e: float) -> float:
    return 2.0 * math.atan2(math.sqrt(1.0 + e) * math.sin(E / 2.0),
                            math.sqrt(1.0 - e) * math.cos(E / 2.0))


def true_to_eccentric_anomaly(nu: float, e: float) -> float:
    return 2.0 * math.atan2(math.sqrt(1.0 - e) * math.sin(nu / 2.0),
                            math.sqrt(1.0 + e) * math.cos(nu / 2.0))


def hyperbolic_to_true_anomaly(H: float, e: float) -> float:
    """tan(nu/2) = sqrt((e+1)/(e-1)) * tanh(H/2)"""
    return 2.0 * math.atan(math.sqrt((e + 1.0) / max(e - 1.0, PARABOLIC_GAP)) * math.tanh(H / 2.0))


def true_to_hyperbolic_anomaly(nu: float, e: float) -> float:
    x = math.sqrt(max(e - 1.0, 0.0) / (e + 1.0)) * math.tan(nu / 2.0)
    if abs(x) > ATANH_CLAMP:
        logger.warning("True anomaly %.6f beyond asymptote for e=%.6f, clamping", nu, e)
        x = math.copysign(ATANH_CLAMP, x)
    return 2.0 * math.atanh(x)


def hyperbolic_true_anomaly_limit(e: float) -> float:
    """Asymptotic true anomaly arccos(-1/e) of a hyperbola (pi for e <= 1)."""
    if e <= 1.0:
        return math.pi
    return math.acos(-1.0 / e)


def orbital_radius(a: float, e: float, nu: float) -> float:
    """r = a(1 - e^2) / (1 + e cos(nu)); a(1 - e^2) > 0 for both conic families."""
    return a * (1.0 - e**2) / (1.0 + e * math.cos(nu))


def perifocal_state(a: float, e: float, mu: float, nu: float) -> tuple[np.ndarray, np.ndarray]:
    """Position and velocity in the perifocal (periapsis-aligned) frame."""
    p = max(a * (1.0 - e**2), MIN_SEMI_LATUS_RECTUM)
    cos_nu = math.cos(nu)
    sin_nu = math.sin(nu)
    r_mag = p / (1.0 + e * cos_nu)
    v_scale = math.sqrt(mu / p)

    r = np.array([r_mag * cos_nu, r_mag * sin_nu, 0.0])
    v = np.array([-v_scale * sin_nu, v_scale * (e + cos_nu), 0.0])
    return r, v


def perifocal_to_ecliptic_matrix(i: float, Omega: float, omega: float) -> np.ndarray:
    """Rotation matrix Rz(Omega) Rx(i) Rz(omega)."""
    cO, sO = math.cos(Omega), math.sin(Omega)
    ci, si = math.cos(i), math.sin(i)
    cw, sw = math.cos(omega), math.sin(omega)
    return np.array([
        [cO * cw - sO * sw * ci, -cO * sw - sO * cw * ci, sO * si],
        [sO * cw + cO * sw * ci, -sO * sw + cO * cw * ci, -cO * si],
        [sw * si, cw * si, ci],
    ])


def rotate_to_ecliptic(vec: np.ndarray, i: float, Omega: float, omega: float) -> np.ndarray:
    return perifocal_to_ecliptic_matrix(i, Omega, omega) @ np.asarray(vec, dtype=float)


def solve_anomaly(elements: OrbitalElements, t: float) -> ConicAnomaly:
    """Locate the object on its conic at Julian date ``t``."""
    M = propagate_mean_anomaly(elements, t)
    conic = conic_of(elements.e)
    if conic is Conic.HYPERBOLIC:
        H = solve_kepler_hyperbolic(M, elements.e)
        return ConicAnomaly(conic, M, H, hyperbolic_to_true_anomaly(H, elements.e))

    E = solve_kepler(M, elements.e)
    return ConicAnomaly(conic, M, E, eccentric_to_true_anomaly(E, elements.e))


def elements_to_cartesian(elements: OrbitalElements, t: float) -> CartesianState:
    """
    Convert orbital elements to a Cartesian state at Julian date ``t``.

    Non-finite inputs produce non-finite outputs rather than an exception so
    callers can turn them into a typed truncation.
    Finite but malformed element sets raise ValueError.
    """
    a, e, i, Omega, omega = elements.a, elements.e, elements.i, elements.Omega, elements.omega
    if not elements.is_finite():
        nan = np.full(3, np.nan)
        return CartesianState(r=nan, v=nan.copy())
    elements.validate()

    nu = solve_anomaly(elements, t).true_anomaly
    r_pf, v_pf = perifocal_state(a, e, elements.mu, nu)
    rot = perifocal_to_ecliptic_matrix(i, Omega, omega)
    return CartesianState(r=rot @ r_pf, v=rot @ v_pf)


def get_position(elements: OrbitalElements, t: float) -> np.ndarray:
    return elements_to_cartesian(elements, t).r


def get_velocity(elements: OrbitalElements, t: float) -> np.ndarray:
    return elements_to_cartesian(elements, t).v


__all__ = [
    "ConicAnomaly",
    "Conic",
    "wrap_two_pi",
    "OrbitType",
    "classify_orbit",
    "mean_motion",
    "propagate_mean_anomaly",
    "solve_kepler",
    "solve_kepler_hyperbolic",
    "eccentric_to_true_anomaly",
    "true_to_eccentric_anomaly",
    "hyperbolic_to_true_anomaly",
    "true_to_hyperbolic_anomaly",
    "hyperbolic_true_anomaly_limit",
    "orbital_radius",
    "perifocal_state",
    "perifocal_to_ecliptic_matrix",
    "rotate_to_ecliptic",
    "solve_anomaly",
    "elements_to_cartesian",
    "get_position",
    "get_velocity",
]
