from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from sailnav.bodies import BodyRegistry, load_bodies_data
from sailnav.constants import MU_SUN

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_SUN_COLLISION_RADIUS = 0.02  # AU, twice the radiation-pressure floor
DEFAULT_ESCAPE_RADIUS = 10.0  # AU, prediction stops beyond this heliocentric distance
DEFAULT_MAX_ECCENTRICITY = 50.0  # larger values signal numerical breakdown
DEFAULT_SOI_COOLDOWN = 0.1  # days between two SOI transitions
DEFAULT_SOI_EXIT_HYSTERESIS = 1.0  # exit when r > soi_radius * hysteresis
DEFAULT_PERIAPSIS_SAFETY_FACTOR = 1.1  # minimum periapsis as a multiple of body radius
DEFAULT_MIN_THRUST = 1e-20  # AU/day^2, below this thrust is ignored
DEFAULT_MAX_INTERSECTIONS = 20
DEFAULT_INTERSECTION_THRESHOLD = 0.1  # AU, for bodies without an SOI
DEFAULT_SOI_THRESHOLD_FACTOR = 2.0  # threshold = factor * soi_radius
DEFAULT_PREDICTION_DURATION_DAYS = 365.0
DEFAULT_PREDICTION_STEPS = 200
DEFAULT_PREDICTION_BUDGET_S = 0.010


@dataclass(frozen=True, slots=True)
class PhysicsConfig:
    sun_collision_radius: float = DEFAULT_SUN_COLLISION_RADIUS
    escape_radius: float = DEFAULT_ESCAPE_RADIUS
    max_eccentricity: float = DEFAULT_MAX_ECCENTRICITY
    soi_cooldown: float = DEFAULT_SOI_COOLDOWN
    soi_exit_hysteresis: float = DEFAULT_SOI_EXIT_HYSTERESIS
    periapsis_safety_factor: float = DEFAULT_PERIAPSIS_SAFETY_FACTOR
    min_thrust: float = DEFAULT_MIN_THRUST
    max_intersections: int = DEFAULT_MAX_INTERSECTIONS
    intersection_threshold: float = DEFAULT_INTERSECTION_THRESHOLD
    soi_threshold_factor: float = DEFAULT_SOI_THRESHOLD_FACTOR
    prediction_duration_days: float = DEFAULT_PREDICTION_DURATION_DAYS
    prediction_steps: int = DEFAULT_PREDICTION_STEPS
    prediction_budget_s: float = DEFAULT_PREDICTION_BUDGET_S


def _positive_or(value: Optional[float], default: float) -> float:
    if value is None:
        return default
    value = float(value)
    return value if value > 0.0 else default


def _non_negative_or(value: Optional[float], default: float) -> float:
    if value is None:
        return default
    value = float(value)
    return value if value >= 0.0 else default


def make_physics_config(
    *,
    sun_collision_radius: Optional[float] = None,
    escape_radius: Optional[float] = None,
    max_eccentricity: Optional[float] = None,
    soi_cooldown: Optional[float] = None,
    soi_exit_hysteresis: Optional[float] = None,
    periapsis_safety_factor: Optional[float] = None,
    min_thrust: Optional[float] = None,
    max_intersections: Optional[int] = None,
    intersection_threshold: Optional[float] = None,
    soi_threshold_factor: Optional[float] = None,
    prediction_duration_days: Optional[float] = None,
    prediction_steps: Optional[int] = None,
    prediction_budget_s: Optional[float] = None,
) -> PhysicsConfig:
    """Build a PhysicsConfig; missing or out-of-range overrides fall back to the defaults."""
    escape = _positive_or(escape_radius, DEFAULT_ESCAPE_RADIUS)
    sun = _positive_or(sun_collision_radius, DEFAULT_SUN_COLLISION_RADIUS)
    if sun >= escape:
        sun = DEFAULT_SUN_COLLISION_RADIUS
        escape = DEFAULT_ESCAPE_RADIUS

    hysteresis = _positive_or(soi_exit_hysteresis, DEFAULT_SOI_EXIT_HYSTERESIS)
    if hysteresis < 1.0:
        hysteresis = DEFAULT_SOI_EXIT_HYSTERESIS

    return PhysicsConfig(
        sun_collision_radius=sun,
        escape_radius=escape,
        max_eccentricity=_positive_or(max_eccentricity, DEFAULT_MAX_ECCENTRICITY),
        soi_cooldown=_non_negative_or(soi_cooldown, DEFAULT_SOI_COOLDOWN),
        soi_exit_hysteresis=hysteresis,
        periapsis_safety_factor=_positive_or(periapsis_safety_factor, DEFAULT_PERIAPSIS_SAFETY_FACTOR),
        min_thrust=_non_negative_or(min_thrust, DEFAULT_MIN_THRUST),
        max_intersections=int(_positive_or(max_intersections, DEFAULT_MAX_INTERSECTIONS)),
        intersection_threshold=_positive_or(intersection_threshold, DEFAULT_INTERSECTION_THRESHOLD),
        soi_threshold_factor=_positive_or(soi_threshold_factor, DEFAULT_SOI_THRESHOLD_FACTOR),
        prediction_duration_days=_positive_or(prediction_duration_days, DEFAULT_PREDICTION_DURATION_DAYS),
        prediction_steps=int(_positive_or(prediction_steps, DEFAULT_PREDICTION_STEPS)),
        prediction_budget_s=_positive_or(prediction_budget_s, DEFAULT_PREDICTION_BUDGET_S),
    )


@dataclass(frozen=True)
class SimulationContext:
    """
    Everything a core call needs beyond its direct arguments.

    Passed explicitly into every call; two contexts never share state, so a
    "what-if" planning sandbox can run beside the live simulation.
    """
    bodies: BodyRegistry
    mu_central: float = MU_SUN
    config: PhysicsConfig = field(default_factory=PhysicsConfig)

    def mu_of(self, body_name: Optional[str]) -> float:
        """Gravitational parameter of a frame centre (the star when ``body_name`` is None)."""
        if body_name is None:
            return self.mu_central
        return self.bodies[body_name].mu


def make_context(bodies: Optional[BodyRegistry] = None, config: Optional[PhysicsConfig] = None,
                 mu_central: float = MU_SUN) -> SimulationContext:
    if bodies is None:
        bodies = load_bodies_data()
    if config is None:
        config = PhysicsConfig()
    return SimulationContext(bodies=bodies, mu_central=mu_central, config=config)
