# Configure JAX to use double precision (64-bit floats) throughout the package
import jax
jax.config.update("jax_enable_x64", True)

from .orbital_elements import OrbitalElements, Conic, OrbitType, classify_orbit
from .cartesian_state import CartesianState

from .constants import (
    KMPAU,
    DAY,
    J2000,
    MU_SUN,
    SOLAR_PRESSURE_1AU,
    ACCEL_CONVERSION,
    AU_PER_DAY_TO_KM_S,
    DEFAULT_SHIP_MASS,
)

from .astrodynamics import (
    ConicAnomaly,
    mean_motion,
    propagate_mean_anomaly,
    solve_kepler,
    solve_kepler_hyperbolic,
    eccentric_to_true_anomaly,
    true_to_eccentric_anomaly,
    hyperbolic_to_true_anomaly,
    true_to_hyperbolic_anomaly,
    hyperbolic_true_anomaly_limit,
    orbital_radius,
    perifocal_state,
    rotate_to_ecliptic,
    solve_anomaly,
    elements_to_cartesian,
    get_position,
    get_velocity,
)

from .state_conversion import (
    InvalidStateError,
    cartesian_to_elements,
    elements_to_state,
    specific_energy,
    angular_momentum,
    helio_to_frame,
    frame_to_helio,
)

from .sail import (
    SailState,
    solar_pressure,
    sail_thrust_direction,
    solar_sail_acceleration,
    characteristic_acceleration,
    ecliptic_to_rtn,
    optimal_sail_angle,
    estimate_delta_a_per_orbit,
)

from .bodies import (
    Body,
    BodyRegistry,
    load_bodies_data,
)

from .config import (
    PhysicsConfig,
    SimulationContext,
    make_physics_config,
    make_context,
)

from .soi import (
    CoordinateFrame,
    SOIEvent,
    SOIState,
    SOIUpdate,
    check_soi_entry,
    check_soi_exit,
    helio_to_planetocentric,
    planetocentric_to_helio,
    enter_soi,
    exit_soi,
    enforce_periapsis_floor,
    segment_enters_soi,
    update_soi,
)

from .propagator import (
    advance,
    coast,
    propagate,
    ShipState,
    ShipStep,
    step_ship,
)

from .trajectory import (
    TruncationReason,
    TrajectoryPoint,
    predict_trajectory,
)

from .intersections import (
    Reliability,
    IntersectionEvent,
    closest_approach,
    detect_intersections,
    find_orbit_crossings,
)

from .cache import (
    fingerprint,
    PredictionCache,
)

from .gravity_assist import (
    hyperbolic_excess_velocity,
    turning_angle,
    asymptotic_angle,
    b_plane_radius,
    predict_gravity_assist,
)

from .odes import (
    ballistic_ode,
    solar_sail_ode,
    integrate_reference,
)

__all__ = [
    # Constants
    "KMPAU",
    "DAY",
    "J2000",
    "MU_SUN",
    "SOLAR_PRESSURE_1AU",
    "ACCEL_CONVERSION",
    "AU_PER_DAY_TO_KM_S",
    "DEFAULT_SHIP_MASS",

    # Named tuples and enums
    "OrbitalElements",
    "CartesianState",
    "Conic",
    "OrbitType",
    "ConicAnomaly",

    # Conic solver
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
    "rotate_to_ecliptic",
    "solve_anomaly",
    "elements_to_cartesian",
    "get_position",
    "get_velocity",

    # State conversion
    "InvalidStateError",
    "cartesian_to_elements",
    "elements_to_state",
    "specific_energy",
    "angular_momentum",
    "helio_to_frame",
    "frame_to_helio",

    # Sail
    "SailState",
    "solar_pressure",
    "sail_thrust_direction",
    "solar_sail_acceleration",
    "characteristic_acceleration",
    "ecliptic_to_rtn",
    "optimal_sail_angle",
    "estimate_delta_a_per_orbit",

    # Bodies and configuration
    "Body",
    "BodyRegistry",
    "load_bodies_data",
    "PhysicsConfig",
    "SimulationContext",
    "make_physics_config",
    "make_context",

    # SOI
    "CoordinateFrame",
    "SOIEvent",
    "SOIState",
    "SOIUpdate",
    "check_soi_entry",
    "check_soi_exit",
    "helio_to_planetocentric",
    "planetocentric_to_helio",
    "enter_soi",
    "exit_soi",
    "enforce_periapsis_floor",
    "segment_enters_soi",
    "update_soi",

    # Propagation
    "advance",
    "coast",
    "propagate",
    "ShipState",
    "ShipStep",
    "step_ship",

    # Prediction and intersections
    "TruncationReason",
    "TrajectoryPoint",
    "predict_trajectory",
    "Reliability",
    "IntersectionEvent",
    "closest_approach",
    "detect_intersections",
    "find_orbit_crossings",
    "fingerprint",
    "PredictionCache",

    # Gravity assist
    "hyperbolic_excess_velocity",
    "turning_angle",
    "asymptotic_angle",
    "b_plane_radius",
    "predict_gravity_assist",

    # ODEs
    "ballistic_ode",
    "solar_sail_ode",
    "integrate_reference",
]
