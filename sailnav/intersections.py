"""
Close-approach detection between a predicted trajectory and moving bodies.
"""
import logging
import math
from enum import Enum
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from sailnav.bodies import BodyRegistry
from sailnav.config import PhysicsConfig
from sailnav.trajectory import TrajectoryPoint

logger = logging.getLogger(__name__)

CROSSING_ECCENTRICITY = 0.05  # orbits above this also get peri/aphelion crossings
CROSSING_RADIUS_GAP = 0.01  # AU, minimum separation between checked radii


class Reliability(str, Enum):
    FULL = "FULL"
    PARTIAL = "PARTIAL"


class IntersectionEvent(BaseModel):
    """Closest approach between the predicted trajectory and one body."""
    model_config = ConfigDict(frozen=True)

    body: str = Field(..., description="Name of the body")
    time: float = Field(..., description="Julian date of closest approach")
    body_position: Tuple[float, float, float] = Field(..., description="Heliocentric body position (AU)")
    trajectory_position: Tuple[float, float, float] = Field(..., description="Heliocentric ship position (AU)")
    distance: float = Field(..., ge=0.0, description="Separation at closest approach (AU)")
    reliability: Reliability = Field(Reliability.FULL,
                                     description="PARTIAL when the true minimum may lie outside the sampled window")


class ClosestApproach(NamedTuple):
    s: float
    time: float
    distance: float
    trajectory_position: np.ndarray
    body_position: np.ndarray


class OrbitCrossing(NamedTuple):
    body: str
    time: float
    radius: float
    trajectory_position: np.ndarray
    body_position: np.ndarray
    distance: float


def closest_approach(p1, p2, b1, b2, t1: float, t2: float) -> ClosestApproach:
    """
    Minimum separation of two linearly moving points over one segment.

    Both ship and body are parameterised by s in [0, 1]; the minimum of
    |W + sV|^2 with W = p1 - b1 and V = (p2 - p1) - (b2 - b1) is at
    s* = clamp(-(W.V)/(V.V), 0, 1), with s = 0 when V.V vanishes.
    """
    p1 = np.asarray(p1, dtype=float)
    p2 = np.asarray(p2, dtype=float)
    b1 = np.asarray(b1, dtype=float)
    b2 = np.asarray(b2, dtype=float)

    W = p1 - b1
    V = (p2 - p1) - (b2 - b1)
    VdotV = float(V @ V)
    if VdotV < 1e-20:
        s = 0.0
    else:
        s = min(max(-float(W @ V) / VdotV, 0.0), 1.0)

    ship = p1 + s * (p2 - p1)
    body = b1 + s * (b2 - b1)
    return ClosestApproach(s, t1 + s * (t2 - t1), float(np.linalg.norm(ship - body)), ship, body)


def _threshold(body, config: PhysicsConfig) -> float:
    if body.has_soi:
        return config.soi_threshold_factor * body.soi_radius
    return config.intersection_threshold


def detect_intersections(trajectory: Sequence[TrajectoryPoint], bodies: BodyRegistry, reference_time: float,
                         active_soi_body: Optional[str] = None,
                         config: Optional[PhysicsConfig] = None) -> List[IntersectionEvent]:
    """
    Find close approaches between a predicted trajectory and the bodies in ``bodies``.

    Body positions at every sample time are computed once up front.  Each
    contiguous run of segments within a body's threshold yields one event at
    its minimum.  Only approaches at or after ``reference_time`` are kept.
    When ``active_soi_body`` is set only that body is considered.  Results
    are sorted by time and capped at ``config.max_intersections``.
    """
    config = config if config is not None else PhysicsConfig()
    if len(trajectory) < 2:
        return []

    if active_soi_body is not None:
        if active_soi_body not in bodies:
            raise ValueError(f"Unknown SOI body {active_soi_body}")
        names = [active_soi_body]
    else:
        names = bodies.names

    times = np.array([p.time for p in trajectory], dtype=float)
    positions = np.array([p.position for p in trajectory], dtype=float)
    body_states = bodies.states_at(times, names)
    truncated = trajectory[-1].truncated is not None
    last_segment = len(trajectory) - 2

    events: List[IntersectionEvent] = []

    def _emit(name: str, best: ClosestApproach, k: int) -> None:
        at_start = k == 0 and best.s == 0.0
        at_end = k == last_segment and (best.s == 1.0 or truncated)
        reliability = Reliability.PARTIAL if at_start or at_end else Reliability.FULL
        events.append(IntersectionEvent(
            body=name,
            time=best.time,
            body_position=tuple(float(x) for x in best.body_position),
            trajectory_position=tuple(float(x) for x in best.trajectory_position),
            distance=best.distance,
            reliability=reliability,
        ))

    for name in names:
        threshold = _threshold(bodies[name], config)
        body_r = body_states[name].r
        best: Optional[ClosestApproach] = None
        best_k = -1

        for k in range(len(trajectory) - 1):
            if times[k + 1] < reference_time:
                continue
            approach = closest_approach(positions[k], positions[k + 1], body_r[k], body_r[k + 1],
                                        times[k], times[k + 1])
            if not math.isfinite(approach.distance):
                logger.warning("Non-finite distance to %s on segment %d, skipping", name, k)
                if best is not None:
                    _emit(name, best, best_k)
                    best = None
                continue

            if approach.distance < threshold and approach.time >= reference_time:
                if best is None or approach.distance < best.distance:
                    best, best_k = approach, k
            elif best is not None:
                _emit(name, best, best_k)
                best = None

        if best is not None:
            _emit(name, best, best_k)

    events.sort(key=lambda ev: ev.time)
    return events[:config.max_intersections]


def _radius_crossings(p1: np.ndarray, p2: np.ndarray, radius: float) -> List[float]:
    """Fractions s in [0, 1] where |p1 + s(p2 - p1)| = radius."""
    D = p2 - p1
    a = float(D @ D)
    if a < 1e-20:
        return []
    b = 2.0 * float(p1 @ D)
    c = float(p1 @ p1) - radius**2
    disc = b * b - 4.0 * a * c
    if disc < 0.0:
        return []
    root = math.sqrt(disc)
    return [s for s in ((-b - root) / (2.0 * a), (-b + root) / (2.0 * a)) if 0.0 <= s <= 1.0]


def find_orbit_crossings(trajectory: Sequence[TrajectoryPoint], bodies: BodyRegistry, reference_time: float,
                         active_soi_body: Optional[str] = None,
                         config: Optional[PhysicsConfig] = None) -> List[OrbitCrossing]:
    """
    Times at which the trajectory crosses the orbital radius of a heliocentric body.

    Radii checked are the body's semi-major axis, plus perihelion and
    aphelion for noticeably eccentric orbits.  Crossings are reported
    whether or not the body is nearby at that moment.
    When ``active_soi_body`` is set only that body is checked.
    """
    config = config if config is not None else PhysicsConfig()
    if len(trajectory) < 2:
        return []

    if active_soi_body is not None and active_soi_body not in bodies:
        raise ValueError(f"Unknown SOI body {active_soi_body}")

    times = np.array([p.time for p in trajectory], dtype=float)
    positions = np.array([p.position for p in trajectory], dtype=float)
    crossings: List[OrbitCrossing] = []

    for body in bodies:
        if body.parent is not None or (active_soi_body is not None and body.name != active_soi_body):
            continue
        a = body.elements.a
        radii = [a]
        if body.elements.e > CROSSING_ECCENTRICITY:
            for r in (body.elements.periapsis(), body.elements.apoapsis()):
                if abs(r - a) > CROSSING_RADIUS_GAP:
                    radii.append(r)

        seen = set()
        for k in range(len(trajectory) - 1):
            for radius in radii:
                for s in _radius_crossings(positions[k], positions[k + 1], radius):
                    t = times[k] + s * (times[k + 1] - times[k])
                    key = round(t, 3)
                    if t < reference_time or key in seen:
                        continue
                    seen.add(key)
                    ship = positions[k] + s * (positions[k + 1] - positions[k])
                    body_r = bodies.state_of(body.name, t).r
                    crossings.append(OrbitCrossing(body.name, t, radius, ship, body_r,
                                                   float(np.linalg.norm(ship - body_r))))

    crossings.sort(key=lambda c: c.time)
    return crossings[:config.max_intersections]
