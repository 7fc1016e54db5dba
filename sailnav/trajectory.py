"""
Trajectory prediction.

Samples the propagator and SOI manager over a time window and returns a
heliocentric polyline for display and intersection detection.  Numerical
breakdown ends the polyline early with a typed reason on its last point.
"""
import logging
import time
from enum import Enum
from typing import Callable, List, Optional, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from sailnav.cartesian_state import CartesianState
from sailnav.config import SimulationContext
from sailnav.orbital_elements import OrbitalElements
from sailnav.propagator import advance
from sailnav.sail import SailState
from sailnav.soi import CoordinateFrame, SOIEvent, SOIState, update_soi
from sailnav.state_conversion import elements_to_state, frame_to_helio

logger = logging.getLogger(__name__)


class TruncationReason(str, Enum):
    SUN_COLLISION = "SUN_COLLISION"
    ESCAPED = "ESCAPED"
    NON_FINITE = "NON_FINITE"
    ECCENTRIC_INSTABILITY = "ECCENTRIC_INSTABILITY"
    ORBITAL_INSTABILITY = "ORBITAL_INSTABILITY"
    BODY_COLLISION = "BODY_COLLISION"
    TIME_BUDGET = "TIME_BUDGET"


class TrajectoryPoint(BaseModel):
    """A single predicted ship position, always in heliocentric coordinates."""
    model_config = ConfigDict(frozen=True)

    position: Tuple[float, float, float] = Field(..., description="Heliocentric position (AU)")
    time: float = Field(..., description="Julian date")
    frame: CoordinateFrame = Field(CoordinateFrame.HELIOCENTRIC,
                                   description="Frame the ship was propagated in at this sample")
    body: Optional[str] = Field(None, description="Frame centre, None for the star")
    truncated: Optional[TruncationReason] = Field(None, description="Why prediction stopped after this point")

    @property
    def r(self) -> np.ndarray:
        return np.array(self.position)


def _truncate(points: List[TrajectoryPoint], reason: TruncationReason, t: float) -> None:
    logger.warning("Trajectory truncated at JD %.4f: %s", t, reason.value)
    if points:
        points[-1] = points[-1].model_copy(update={'truncated': reason})


def _frame_origin(soi_state: SOIState, t: float, context: SimulationContext) -> Optional[CartesianState]:
    if not soi_state.is_in_soi:
        return None
    return context.bodies.state_of(soi_state.current_body, t)


def predict_trajectory(elements: OrbitalElements, sail: SailState, mass: float, start_time: float,
                       duration_days: float, steps: int, context: SimulationContext,
                       soi_state: Optional[SOIState] = None, deadline: Optional[float] = None,
                       clock: Callable[[], float] = time.perf_counter) -> List[TrajectoryPoint]:
    """
    Predict the ship's path over ``duration_days`` starting at ``start_time``.

    Args:
        elements: Ship elements in the frame given by ``soi_state``
        sail: Sail geometry and orientation, held fixed over the window
        mass: Ship mass (kg)
        start_time: Julian date of the first sample
        duration_days: Length of the window
        steps: Number of samples; consecutive samples are duration/steps apart
        context: Bodies and physics configuration
        soi_state: Frame of ``elements`` (heliocentric when omitted)
        deadline: Absolute ``clock()`` value after which prediction stops
        clock: Time source compared against ``deadline``

    Returns:
        Points in strictly increasing time.  When prediction stops early the
        last point carries the ``TruncationReason``.

    Raises:
        ValueError: for a non-positive mass, a negative step count or
            duration, or finite elements that fail ``OrbitalElements.validate``.
    """
    if not mass > 0.0:
        raise ValueError(f"Ship mass must be positive, got {mass}")
    if steps < 0:
        raise ValueError(f"Step count must be non-negative, got {steps}")
    if duration_days < 0.0:
        raise ValueError(f"Duration must be non-negative, got {duration_days}")
    if elements.is_finite():
        elements.validate()
    if steps == 0 or duration_days == 0.0:
        return []

    cfg = context.config
    dt = duration_days / steps
    soi_state = soi_state if soi_state is not None else SOIState.heliocentric()
    current = elements
    previous_time = None
    points: List[TrajectoryPoint] = []

    for k in range(steps):
        t = start_time + k * dt

        if k > 0 and deadline is not None and clock() > deadline:
            _truncate(points, TruncationReason.TIME_BUDGET, t)
            break

        update = update_soi(current, soi_state, t, context, previous_time)
        current, soi_state = update.elements, update.soi_state

        local = elements_to_state(current, t)
        if not local.is_finite():
            _truncate(points, TruncationReason.NON_FINITE, t)
            break

        origin = _frame_origin(soi_state, t, context)
        helio = frame_to_helio(local, origin) if origin is not None else local
        r_sun = float(np.linalg.norm(helio.r))
        if r_sun < cfg.sun_collision_radius:
            _truncate(points, TruncationReason.SUN_COLLISION, t)
            break
        if r_sun > cfg.escape_radius:
            _truncate(points, TruncationReason.ESCAPED, t)
            break

        collided = update.event is SOIEvent.COLLISION
        points.append(TrajectoryPoint(
            position=tuple(float(x) for x in helio.r),
            time=t,
            frame=soi_state.frame,
            body=soi_state.current_body,
        ))
        if collided:
            _truncate(points, TruncationReason.BODY_COLLISION, t)
            break
        if k == steps - 1:
            break

        next_origin = _frame_origin(soi_state, t + dt, context)
        new_elements = advance(current, sail, mass, t, dt, next_origin, cfg.min_thrust)
        if not new_elements.is_finite():
            _truncate(points, TruncationReason.ORBITAL_INSTABILITY, t)
            break
        if new_elements.e < 0.0 or new_elements.e > cfg.max_eccentricity:
            _truncate(points, TruncationReason.ECCENTRIC_INSTABILITY, t)
            break

        current = new_elements
        previous_time = t

    logger.debug("Predicted %d/%d points from JD %.4f", len(points), steps, start_time)
    return points
