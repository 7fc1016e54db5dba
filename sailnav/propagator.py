"""
Orbit propagation with continuous sail thrust.

Thrust is integrated with the state-vector method: evaluate the conic,
kick the velocity, and rebuild the element set.  This path avoids the
singularities of the Gauss variational equations at e = 0 and i = 0, and
out-of-plane thrust changes the inclination through the same code.
"""
import logging
import math
from typing import Callable, NamedTuple, Optional

import numpy as np

from sailnav.cartesian_state import CartesianState
from sailnav.config import DEFAULT_MIN_THRUST, SimulationContext
from sailnav.orbital_elements import OrbitalElements
from sailnav.sail import SailState, solar_sail_acceleration
from sailnav.soi import SOIEvent, SOIState, update_soi
from sailnav.state_conversion import (
    InvalidStateError,
    cartesian_to_elements,
    elements_to_state,
    frame_to_helio,
)

logger = logging.getLogger(__name__)


def coast(elements: OrbitalElements, t: float) -> CartesianState:
    """Ballistic state at Julian date ``t``; the element set itself never changes."""
    return elements_to_state(elements, t)


def advance(elements: OrbitalElements, sail: SailState, mass: float, t: float, dt: float,
            frame_origin: Optional[CartesianState] = None,
            min_thrust: float = DEFAULT_MIN_THRUST) -> OrbitalElements:
    """
    Advance an element set by one thrust step from ``t`` to ``t + dt``.

    The state on the current conic is evaluated at ``t + dt`` and the sail
    acceleration there is applied as a velocity kick ``v + a*dt``.  The new
    elements have epoch ``t + dt``.

    Args:
        elements: Ship elements in their own frame
        sail: Sail geometry and orientation
        mass: Ship mass (kg)
        t: Julian date at the start of the step
        dt: Step length (days)
        frame_origin: Heliocentric state of the frame centre at ``t + dt``
            when ``elements`` are planetocentric; thrust is always computed
            from the heliocentric geometry
        min_thrust: Accelerations below this (AU/day^2) are ignored

    Returns:
        New elements, or ``elements`` unchanged when thrust is negligible or
        the state cannot be evaluated.
    """
    if not mass > 0.0:
        raise ValueError(f"Ship mass must be positive, got {mass}")
    if dt < 0.0:
        raise ValueError(f"Step length must be non-negative, got {dt}")
    if not elements.is_finite():
        logger.warning("advance() called with non-finite elements %s", elements)
        return elements

    t_new = t + dt
    state = elements_to_state(elements, t_new)
    if not state.is_finite():
        return elements

    helio = frame_to_helio(state, frame_origin) if frame_origin is not None else state
    distance = float(np.linalg.norm(helio.r))
    accel = solar_sail_acceleration(sail, helio.r, helio.v, distance, mass)
    if float(np.linalg.norm(accel)) < min_thrust or dt == 0.0:
        return elements

    v_new = state.v + accel * dt
    try:
        return cartesian_to_elements(state.r, v_new, elements.mu, t_new)
    except InvalidStateError as exc:
        logger.warning("Thrust step at JD %.4f produced an invalid state (%s), keeping elements", t_new, exc)
        return elements


def propagate(elements: OrbitalElements, sail: SailState, mass: float, t0: float, t1: float,
              max_step: float = 1.0,
              frame_origin: Optional[Callable[[float], CartesianState]] = None,
              min_thrust: float = DEFAULT_MIN_THRUST) -> OrbitalElements:
    """
    Advance elements from ``t0`` to ``t1`` in equal sub-steps no longer than ``max_step`` days.

    ``frame_origin`` maps a Julian date to the heliocentric state of the
    frame centre for planetocentric elements.
    """
    if t1 < t0:
        raise ValueError(f"Cannot propagate backwards from {t0} to {t1}")
    if not max_step > 0.0:
        raise ValueError(f"max_step must be positive, got {max_step}")
    if t1 == t0:
        return elements

    n_steps = max(1, math.ceil((t1 - t0) / max_step))
    dt = (t1 - t0) / n_steps
    for k in range(n_steps):
        t = t0 + k * dt
        origin = frame_origin(t + dt) if frame_origin is not None else None
        elements = advance(elements, sail, mass, t, dt, origin, min_thrust)
    return elements


class ShipState(NamedTuple):
    elements: OrbitalElements
    soi_state: SOIState


class ShipStep(NamedTuple):
    ship: ShipState
    event: Optional[SOIEvent]
    state: CartesianState  # heliocentric state at the end of the step


def step_ship(ship: ShipState, sail: SailState, mass: float, t: float, dt: float,
              context: SimulationContext) -> ShipStep:
    """
    One simulation tick for a ship: SOI update at ``t``, then a thrust step to ``t + dt``.

    The caller publishes the returned ``ShipState`` atomically; the input is
    never modified.
    """
    update = update_soi(ship.elements, ship.soi_state, t, context)
    soi_state = update.soi_state

    origin = None
    if soi_state.is_in_soi:
        origin = context.bodies.state_of(soi_state.current_body, t + dt)

    elements = advance(update.elements, sail, mass, t, dt, origin, context.config.min_thrust)
    local = elements_to_state(elements, t + dt)
    helio = frame_to_helio(local, origin) if origin is not None else local
    return ShipStep(ShipState(elements, soi_state), update.event, helio)
