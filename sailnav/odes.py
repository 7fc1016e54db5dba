from typing import Optional

import numpy as np
from scipy.integrate import solve_ivp

from sailnav.sail import SailState, solar_sail_acceleration


def ballistic_ode(t: float, y: np.ndarray, mu: float) -> np.ndarray:
    """
    Derivatives for pure Keplerian motion (no solar sail).
    y = [x, y, z, vx, vy, vz]
    """
    r = y[:3]
    v = y[3:]
    r_mag = np.linalg.norm(r)

    a = -mu * r / r_mag**3

    return np.concatenate([v, a])


def solar_sail_ode(t: float, y: np.ndarray, mu: float, sail: SailState, mass: float) -> np.ndarray:
    """
    Derivatives for heliocentric motion under gravity and sail thrust.
    y = [x, y, z, vx, vy, vz] in AU and AU/day
    """
    r = y[:3]
    v = y[3:]
    r_mag = np.linalg.norm(r)

    a_grav = -mu * r / r_mag**3
    a_sail = solar_sail_acceleration(sail, r, v, r_mag, mass)

    return np.concatenate([v, a_grav + a_sail])


def integrate_reference(r0, v0, mu: float, t_span: tuple[float, float], t_eval=None,
                        sail: Optional[SailState] = None, mass: Optional[float] = None,
                        rtol: float = 1.0E-12, atol: float = 1.0E-12):
    """
    Cowell reference integration of the two-body (optionally sailing) problem.

    Used to check the state-vector propagator against a high-order integrator.

    Returns:
        (t, r, v) with r and v of shape (len(t), 3)
    """
    y0 = np.concatenate((np.asarray(r0, dtype=float), np.asarray(v0, dtype=float)))
    if sail is None:
        fun, args = ballistic_ode, (mu,)
    else:
        if mass is None:
            raise ValueError("mass is required when integrating with a sail")
        fun, args = solar_sail_ode, (mu, sail, mass)

    sol = solve_ivp(fun, t_span=t_span, y0=y0, method='DOP853', t_eval=t_eval,
                    args=args, rtol=rtol, atol=atol)
    if not sol.success:
        raise RuntimeError(f"Reference integration failed: {sol.message}")

    t = sol.t
    r = sol.y.T[:, :3]
    v = sol.y.T[:, 3:]
    return t, r, v
