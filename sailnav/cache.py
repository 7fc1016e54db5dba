"""
Derived-result cache for trajectory prediction.

A trajectory and every intersection list computed from it live under one
content hash of the prediction inputs.  Changing any input changes the key,
so the two can never drift apart.
"""
import hashlib
import json
import logging
from collections import OrderedDict
from typing import Dict, List, NamedTuple, Optional, Tuple

from sailnav.config import SimulationContext
from sailnav.intersections import IntersectionEvent, detect_intersections
from sailnav.orbital_elements import OrbitalElements
from sailnav.sail import SailState
from sailnav.soi import SOIState
from sailnav.trajectory import TrajectoryPoint, TruncationReason, predict_trajectory

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 16
TIME_RESOLUTION = 3  # decimal places of a day used in keys (~86 s)


def fingerprint(elements: OrbitalElements, sail: SailState, mass: float, start_time: float,
                duration_days: float, steps: int, soi_state: Optional[SOIState] = None) -> str:
    """sha256 of a canonical JSON encoding of every prediction input."""
    soi = soi_state if soi_state is not None else SOIState.heliocentric()
    payload = {
        'elements': [float(x) for x in elements],
        'sail': sail.model_dump(),
        'mass': float(mass),
        'start_time': round(float(start_time), TIME_RESOLUTION),
        'duration_days': float(duration_days),
        'steps': int(steps),
        'soi': soi.model_dump(mode='json'),
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(',', ':'))
    return hashlib.sha256(encoded.encode('utf-8')).hexdigest()


class Prediction(NamedTuple):
    key: str
    trajectory: List[TrajectoryPoint]
    intersections: List[IntersectionEvent]


class _Entry:
    __slots__ = ('trajectory', 'intersections')

    def __init__(self, trajectory: List[TrajectoryPoint]):
        self.trajectory = trajectory
        self.intersections: Dict[Tuple[float, Optional[str]], List[IntersectionEvent]] = {}


class PredictionCache:
    """
    Bounded LRU of predictions for one :class:`SimulationContext`.

    Trajectories cut short by the time budget are returned but not stored,
    so the next call gets a chance to finish them.
    """

    def __init__(self, context: SimulationContext, maxsize: int = DEFAULT_CACHE_SIZE):
        if maxsize < 1:
            raise ValueError(f"maxsize must be at least 1, got {maxsize}")
        self.context = context
        self.maxsize = maxsize
        self.hits = 0
        self.misses = 0
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def clear(self) -> None:
        self._entries.clear()

    def predict(self, elements: OrbitalElements, sail: SailState, mass: float, start_time: float,
                duration_days: Optional[float] = None, steps: Optional[int] = None,
                soi_state: Optional[SOIState] = None, reference_time: Optional[float] = None,
                deadline: Optional[float] = None) -> Prediction:
        """
        Trajectory and intersections for the given inputs, computed at most once.

        ``reference_time`` defaults to ``start_time``; intersections are
        restricted to the SOI body of ``soi_state`` when there is one.
        """
        cfg = self.context.config
        duration_days = cfg.prediction_duration_days if duration_days is None else duration_days
        steps = cfg.prediction_steps if steps is None else steps
        soi_state = soi_state if soi_state is not None else SOIState.heliocentric()
        reference_time = start_time if reference_time is None else reference_time

        key = fingerprint(elements, sail, mass, start_time, duration_days, steps, soi_state)
        entry = self._entries.get(key)
        if entry is not None:
            self.hits += 1
            self._entries.move_to_end(key)
        else:
            self.misses += 1
            trajectory = predict_trajectory(elements, sail, mass, start_time, duration_days, steps,
                                            self.context, soi_state=soi_state, deadline=deadline)
            entry = _Entry(trajectory)
            if trajectory and trajectory[-1].truncated is TruncationReason.TIME_BUDGET:
                logger.debug("Not caching partial trajectory %s", key[:12])
            else:
                self._entries[key] = entry
                while len(self._entries) > self.maxsize:
                    self._entries.popitem(last=False)

        ix_key = (round(float(reference_time), TIME_RESOLUTION), soi_state.current_body)
        events = entry.intersections.get(ix_key)
        if events is None:
            events = detect_intersections(entry.trajectory, self.context.bodies, reference_time,
                                          active_soi_body=soi_state.current_body, config=cfg)
            entry.intersections[ix_key] = events
        return Prediction(key, entry.trajectory, events)
