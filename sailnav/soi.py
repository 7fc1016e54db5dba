"""
Sphere-of-influence manager.

A ship is either heliocentric or planetocentric about exactly one body.  The
transition functions here convert the ship's element set between the two
frames through the Cartesian state, so the conversion inherits the
round-trip accuracy of ``cartesian_to_elements``.
"""
import logging
import math
from enum import Enum
from typing import Iterable, NamedTuple, Optional, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator

from sailnav.bodies import Body
from sailnav.cartesian_state import CartesianState
from sailnav.config import SimulationContext
from sailnav.orbital_elements import OrbitalElements
from sailnav.state_conversion import (
    cartesian_to_elements,
    elements_to_state,
    frame_to_helio,
    helio_to_frame,
)

logger = logging.getLogger(__name__)


class CoordinateFrame(str, Enum):
    HELIOCENTRIC = "HELIOCENTRIC"
    PLANETOCENTRIC = "PLANETOCENTRIC"


class SOIEvent(str, Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"
    COLLISION = "COLLISION"


class SOIState(BaseModel):
    """
    Which frame the ship's orbital elements are expressed in.
    """
    model_config = ConfigDict(frozen=True)

    current_body: Optional[str] = Field(None, description="Body whose SOI the ship is in, None for the star")
    frame: CoordinateFrame = Field(CoordinateFrame.HELIOCENTRIC, description="Frame of the ship's elements")
    entry_time: Optional[float] = Field(None, description="Julian date of the last SOI entry")
    entry_position: Optional[Tuple[float, float, float]] = Field(
        None, description="Planetocentric position at the last SOI entry (AU)")
    last_transition_time: Optional[float] = Field(None, description="Julian date of the last transition")

    @model_validator(mode='after')
    def validate_frame(self):
        planetocentric = self.frame == CoordinateFrame.PLANETOCENTRIC
        if planetocentric != (self.current_body is not None):
            raise ValueError("frame must be PLANETOCENTRIC exactly when current_body is set")
        return self

    @property
    def is_in_soi(self) -> bool:
        return self.current_body is not None

    @staticmethod
    def heliocentric(last_transition_time: Optional[float] = None) -> "SOIState":
        """The spawn default: heliocentric, no SOI."""
        return SOIState(last_transition_time=last_transition_time)


class SOIUpdate(NamedTuple):
    elements: OrbitalElements
    soi_state: SOIState
    event: Optional[SOIEvent]


def check_soi_entry(position_helio, candidates: Iterable[Tuple[Body, np.ndarray]]) -> Optional[Body]:
    """
    Body whose SOI contains ``position_helio``.

    When several SOIs overlap the body with the strongest local gravity
    (largest mu/r^2) wins, not simply the nearest one.
    """
    position_helio = np.asarray(position_helio, dtype=float)
    best = None
    best_accel = -math.inf
    for body, body_position in candidates:
        if not body.has_soi:
            continue
        distance = float(np.linalg.norm(position_helio - np.asarray(body_position, dtype=float)))
        if distance >= body.soi_radius:
            continue
        accel = body.mu / max(distance, body.radius, 1e-12) ** 2
        logger.debug("SOI candidate %s at %.6f AU (mu/r^2=%.3e)", body.name, distance, accel)
        if accel > best_accel:
            best, best_accel = body, accel
    return best


def check_soi_exit(position_relative, soi_radius: float, hysteresis: float = 1.0) -> bool:
    return float(np.linalg.norm(position_relative)) > soi_radius * hysteresis


def helio_to_planetocentric(ship: CartesianState, body: CartesianState) -> CartesianState:
    return helio_to_frame(ship, body)


def planetocentric_to_helio(ship: CartesianState, body: CartesianState) -> CartesianState:
    return frame_to_helio(ship, body)


def segment_enters_soi(p1, p2, b1, b2, soi_radius: float) -> Optional[float]:
    """
    Fraction of a step at which a ship outside an SOI first crosses into it.

    Ship and body both move linearly over the step; returns ``None`` when the
    relative path starts inside the sphere or never reaches it.
    """
    W = np.asarray(p1, dtype=float) - np.asarray(b1, dtype=float)
    V = (np.asarray(p2, dtype=float) - np.asarray(p1, dtype=float)) - (
        np.asarray(b2, dtype=float) - np.asarray(b1, dtype=float))

    c = float(W @ W) - soi_radius**2
    if c <= 0.0:
        return None
    a = float(V @ V)
    if a < 1e-20:
        return None
    b = 2.0 * float(W @ V)
    disc = b * b - 4.0 * a * c
    if disc < 0.0:
        return None
    s = (-b - math.sqrt(disc)) / (2.0 * a)
    if 0.0 <= s <= 1.0:
        return s
    return None


def enter_soi(elements: OrbitalElements, body: Body, t: float,
              context: SimulationContext) -> Tuple[OrbitalElements, SOIState]:
    """Re-express heliocentric elements about ``body`` at Julian date ``t``."""
    ship = elements_to_state(elements, t)
    body_state = context.bodies.state_of(body.name, t)
    rel = helio_to_planetocentric(ship, body_state)
    new_elements = cartesian_to_elements(rel.r, rel.v, body.mu, t)
    soi_state = SOIState(
        current_body=body.name,
        frame=CoordinateFrame.PLANETOCENTRIC,
        entry_time=t,
        entry_position=tuple(float(x) for x in rel.r),
        last_transition_time=t,
    )
    logger.info("Entered SOI of %s at JD %.4f (r=%.6f AU, e=%.4f)",
                body.name, t, float(np.linalg.norm(rel.r)), new_elements.e)
    return new_elements, soi_state


def exit_soi(elements: OrbitalElements, soi_state: SOIState, t: float,
             context: SimulationContext) -> Tuple[OrbitalElements, SOIState]:
    """Re-express planetocentric elements about the central star at Julian date ``t``."""
    rel = elements_to_state(elements, t)
    body_state = context.bodies.state_of(soi_state.current_body, t)
    helio = planetocentric_to_helio(rel, body_state)
    new_elements = cartesian_to_elements(helio.r, helio.v, context.mu_central, t)
    logger.info("Exited SOI of %s at JD %.4f (r_sun=%.6f AU)",
                soi_state.current_body, t, float(np.linalg.norm(helio.r)))
    return new_elements, SOIState.heliocentric(last_transition_time=t)


def enforce_periapsis_floor(elements: OrbitalElements, body: Body, t: float,
                            safety_factor: float = 1.1) -> Tuple[OrbitalElements, bool]:
    """
    Collision guard for planetocentric orbits.

    An orbit whose periapsis dips below ``body.radius * safety_factor`` is
    replaced by a circular orbit at that radius with the same orientation.
    Returns the (possibly coerced) elements and whether a collision occurred.
    """
    r_min = body.radius * safety_factor
    if elements.periapsis() >= r_min:
        return elements, False

    logger.warning("Periapsis %.3e AU below safe radius %.3e AU of %s, circularising",
                   elements.periapsis(), r_min, body.name)
    safe = OrbitalElements(
        a=r_min,
        e=0.0,
        i=elements.i,
        Omega=elements.Omega,
        omega=elements.omega,
        M0=0.0,
        epoch=t,
        mu=elements.mu,
    )
    return safe, True


def _sweep_entry(elements: OrbitalElements, t: float, previous_time: float, position: np.ndarray,
                 candidates: list, body_positions: dict, context: SimulationContext):
    """Earliest SOI crossed between ``previous_time`` and ``t``, with its entry time."""
    previous = elements_to_state(elements, previous_time)
    if not previous.is_finite():
        return None, t
    best, best_s = None, math.inf
    for body in candidates:
        b_prev = context.bodies.state_of(body.name, previous_time).r
        s = segment_enters_soi(previous.r, position, b_prev, body_positions[body.name], body.soi_radius)
        if s is not None and s < best_s:
            best, best_s = body, s
    if best is None:
        return None, t
    return best, previous_time + best_s * (t - previous_time)


def update_soi(elements: OrbitalElements, soi_state: SOIState, t: float, context: SimulationContext,
               previous_time: Optional[float] = None) -> SOIUpdate:
    """
    Run the SOI state machine for one step at Julian date ``t``.

    At most one frame transition happens per call, and none within
    ``config.soi_cooldown`` days of the previous one.  When ``previous_time``
    is given, a heliocentric ship that skipped over an SOI during the step is
    caught by a swept check and enters at the crossing time.  Planetocentric
    orbits pass through the collision guard; a collision is reported as
    ``SOIEvent.COLLISION`` (taking precedence over a same-call entry).
    """
    cfg = context.config
    cooling = (soi_state.last_transition_time is not None
               and t - soi_state.last_transition_time < cfg.soi_cooldown)

    if soi_state.is_in_soi:
        body = context.bodies[soi_state.current_body]
        if not cooling:
            rel = elements_to_state(elements, t)
            if rel.is_finite() and check_soi_exit(rel.r, body.soi_radius, cfg.soi_exit_hysteresis):
                new_elements, new_state = exit_soi(elements, soi_state, t, context)
                return SOIUpdate(new_elements, new_state, SOIEvent.EXIT)
        guarded, collided = enforce_periapsis_floor(elements, body, t, cfg.periapsis_safety_factor)
        return SOIUpdate(guarded, soi_state, SOIEvent.COLLISION if collided else None)

    if cooling:
        return SOIUpdate(elements, soi_state, None)

    ship = elements_to_state(elements, t)
    if not ship.is_finite():
        return SOIUpdate(elements, soi_state, None)

    candidates = context.bodies.soi_bodies()
    body_positions = {b.name: context.bodies.state_of(b.name, t).r for b in candidates}
    body = check_soi_entry(ship.r, [(b, body_positions[b.name]) for b in candidates])
    entry_time = t
    if body is None and previous_time is not None and previous_time < t:
        body, entry_time = _sweep_entry(elements, t, previous_time, ship.r, candidates, body_positions, context)
    if body is None:
        return SOIUpdate(elements, soi_state, None)

    new_elements, new_state = enter_soi(elements, body, entry_time, context)
    guarded, collided = enforce_periapsis_floor(new_elements, body, entry_time, cfg.periapsis_safety_factor)
    return SOIUpdate(guarded, new_state, SOIEvent.COLLISION if collided else SOIEvent.ENTRY)
