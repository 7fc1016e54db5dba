"""
State-vector <-> orbital-element conversion.

``cartesian_to_elements`` is the kernel behind both thrust integration and
sphere-of-influence frame changes, so it has to round-trip with
``elements_to_state`` for elliptic and hyperbolic states alike.
"""
import logging
import math

import numpy as np

from sailnav.astrodynamics import (
    elements_to_cartesian,
    true_to_eccentric_anomaly,
    true_to_hyperbolic_anomaly,
    wrap_two_pi,
)
from sailnav.cartesian_state import CartesianState
from sailnav.orbital_elements import OrbitalElements

logger = logging.getLogger(__name__)

NEAR_ZERO = 1e-10
PARABOLIC_NUDGE = 1e-10
MIN_ANGULAR_MOMENTUM = 1e-15


class InvalidStateError(ValueError):
    """Raised when a state vector cannot be converted to orbital elements."""


def specific_energy(r: np.ndarray, v: np.ndarray, mu: float) -> float:
    """Specific orbital energy |v|^2/2 - mu/|r|."""
    return 0.5 * float(np.dot(v, v)) - mu / float(np.linalg.norm(r))


def angular_momentum(r: np.ndarray, v: np.ndarray) -> np.ndarray:
    return np.cross(r, v)


def eccentricity_vector(r: np.ndarray, v: np.ndarray, mu: float) -> np.ndarray:
    r_mag = np.linalg.norm(r)
    return ((np.dot(v, v) - mu / r_mag) * r - np.dot(r, v) * v) / mu


def _angle_about(axis: np.ndarray, start: np.ndarray, end: np.ndarray) -> float:
    """Angle from ``start`` to ``end`` measured positively about the unit ``axis``."""
    return math.atan2(float(np.dot(np.cross(start, end), axis)), float(np.dot(start, end)))


def cartesian_to_elements(r, v, mu: float, epoch: float) -> OrbitalElements:
    """
    Convert a Cartesian state to orbital elements.

    Args:
        r: Position (AU) relative to the central body
        v: Velocity (AU/day) relative to the central body
        mu: Gravitational parameter of the central body (AU^3/day^2)
        epoch: Julian date the state applies to; becomes the element epoch

    Returns:
        OrbitalElements whose mean anomaly at ``epoch`` reproduces the state.
        Elliptic M0 lies in [0, 2pi); hyperbolic M0 is negative on the inbound leg.

    Raises:
        InvalidStateError: for non-positive mu, a zero or non-finite position,
            a non-finite velocity or a rectilinear (zero angular momentum) state.
    """
    r = np.asarray(r, dtype=float)
    v = np.asarray(v, dtype=float)

    if not mu > 0.0:
        raise InvalidStateError(f"Gravitational parameter must be positive, got {mu}")
    if not (np.all(np.isfinite(r)) and np.all(np.isfinite(v))):
        raise InvalidStateError("State vector contains non-finite values")
    r_mag = float(np.linalg.norm(r))
    if r_mag == 0.0:
        raise InvalidStateError("Position vector has zero length")

    h_vec = angular_momentum(r, v)
    h_mag = float(np.linalg.norm(h_vec))
    if h_mag < MIN_ANGULAR_MOMENTUM:
        raise InvalidStateError("Rectilinear state has no orbital plane")
    h_hat = h_vec / h_mag

    energy = specific_energy(r, v, mu)
    e_vec = eccentricity_vector(r, v, mu)
    e = float(np.linalg.norm(e_vec))
    p = h_mag**2 / mu

    if abs(e - 1.0) < PARABOLIC_NUDGE:
        # Keep p fixed and step off the parabola on the side the energy points to
        e = 1.0 + PARABOLIC_NUDGE if energy >= 0.0 else 1.0 - PARABOLIC_NUDGE
        a = p / (1.0 - e**2)
        logger.debug("Near-parabolic state nudged to e=%.12f, a=%.6e", e, a)
    else:
        a = -mu / (2.0 * energy) if energy != 0.0 else 0.0
        if a == 0.0 or (a > 0.0) != (e < 1.0):
            # Energy and eccentricity disagree on the conic close to e = 1
            a = p / (1.0 - e**2)

    i = math.atan2(math.hypot(h_vec[0], h_vec[1]), h_vec[2])

    node = np.array([-h_vec[1], h_vec[0], 0.0])
    node_mag = float(np.linalg.norm(node))
    equatorial = node_mag < NEAR_ZERO * h_mag
    # Reference direction for angles in the orbit plane: the ascending node,
    # or the x axis when the orbit lies in the ecliptic.
    if equatorial:
        Omega = 0.0
        ref = np.array([1.0, 0.0, 0.0])
    else:
        Omega = wrap_two_pi(math.atan2(h_vec[0], -h_vec[1]))
        ref = node / node_mag

    if e > NEAR_ZERO:
        omega = wrap_two_pi(_angle_about(h_hat, ref, e_vec))
        nu = _angle_about(h_hat, e_vec, r)
    else:
        # Circular: periapsis is undefined, measure from the reference direction
        omega = 0.0
        nu = _angle_about(h_hat, ref, r)

    if e >= 1.0:
        H = true_to_hyperbolic_anomaly(nu, e)
        M = e * math.sinh(H) - H
    else:
        E = true_to_eccentric_anomaly(nu, e)
        M = wrap_two_pi(E - e * math.sin(E))

    elements = OrbitalElements(a=a, e=e, i=i, Omega=Omega, omega=omega, M0=M, epoch=epoch, mu=mu)
    logger.debug("state->elements r=%s v=%s -> %s", r, v, elements)
    return elements


def elements_to_state(elements: OrbitalElements, t: float) -> CartesianState:
    """Cartesian state at Julian date ``t`` (delegates to the conic solver)."""
    return elements_to_cartesian(elements, t)


def helio_to_frame(state: CartesianState, origin: CartesianState) -> CartesianState:
    """Express a heliocentric state relative to a moving frame origin."""
    return CartesianState(r=np.asarray(state.r) - np.asarray(origin.r),
                          v=np.asarray(state.v) - np.asarray(origin.v))


def frame_to_helio(state: CartesianState, origin: CartesianState) -> CartesianState:
    """Inverse of :func:`helio_to_frame`."""
    return CartesianState(r=np.asarray(state.r) + np.asarray(origin.r),
                          v=np.asarray(state.v) + np.asarray(origin.v))
