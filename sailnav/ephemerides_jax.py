import jax
import jax.numpy as jnp


def solve_kepler(M: jnp.ndarray, e: jnp.ndarray, max_iter: int = 50) -> jnp.ndarray:
    """
    Solve Kepler's equation M = E - e*sin(E) for eccentric anomaly E
    using Newton-Raphson iteration with jax.lax.scan for AD compatibility.
    """
    E0 = jnp.where(e < 0.8, M, jnp.pi * jnp.ones_like(M))

    def body_fn(E, _):
        f = E - e * jnp.sin(E) - M
        fp = 1.0 - e * jnp.cos(E)
        E_new = E - f / fp
        return E_new, None

    E_final, _ = jax.lax.scan(body_fn, E0, None, length=max_iter)
    return E_final


def solve_kepler_hyperbolic(M: jnp.ndarray, e: jnp.ndarray, max_iter: int = 50) -> jnp.ndarray:
    """
    Solve M = e*sinh(H) - H for the hyperbolic anomaly H.

    Steps that more than double are halved; the carry holds the previous step.
    """
    abs_M = jnp.abs(M)
    H0 = jnp.where(abs_M < 1.0, M, jnp.sign(M) * jnp.abs(jnp.log(2.0 * jnp.maximum(abs_M, 1.0) / e)))

    def body_fn(carry, _):
        H, prev_delta = carry
        f = e * jnp.sinh(H) - H - M
        fp = e * jnp.cosh(H) - 1.0
        safe_fp = jnp.where(jnp.abs(fp) < 1e-15, 1.0, fp)
        delta = jnp.where(jnp.abs(fp) < 1e-15, 0.0, f / safe_fp)
        delta = jnp.where(jnp.abs(delta) > 2.0 * jnp.abs(prev_delta), 0.5 * delta, delta)
        return (H - delta, delta), None

    (H_final, _), _ = jax.lax.scan(body_fn, (H0, jnp.inf * jnp.ones_like(M)), None, length=max_iter)
    return H_final


def keplerian_state(elements: jnp.ndarray, mu: float, t: float) -> tuple[jnp.ndarray, jnp.ndarray]:
    """
    Compute the Cartesian state of one body from packed elements (JAX friendly).

    Elliptic and hyperbolic rows are evaluated on separate branches and
    selected with ``jnp.where``.  Each branch only ever sees eccentricities
    valid for it so the unselected branch cannot produce NaNs.
    """
    a, e, inc, Omega, omega, M0, epoch = elements
    is_hyp = e >= 1.0

    e_ell = jnp.where(is_hyp, 0.5, e)
    e_hyp = jnp.where(is_hyp, e, 2.0)
    a_sel = jnp.where(is_hyp, jnp.where(a < 0.0, a, -1.0), jnp.where(a > 0.0, a, 1.0))
    e_sel = jnp.where(is_hyp, e_hyp, e_ell)

    n = jnp.sqrt(mu / jnp.abs(a_sel) ** 3)
    M = M0 + n * (t - epoch)

    E = solve_kepler(jnp.mod(M, 2.0 * jnp.pi), e_ell)
    nu_ell = 2.0 * jnp.arctan2(
        jnp.sqrt(1.0 + e_ell) * jnp.sin(E / 2.0),
        jnp.sqrt(1.0 - e_ell) * jnp.cos(E / 2.0),
    )

    H = solve_kepler_hyperbolic(M, e_hyp)
    nu_hyp = 2.0 * jnp.arctan(jnp.sqrt((e_hyp + 1.0) / (e_hyp - 1.0)) * jnp.tanh(H / 2.0))

    nu = jnp.where(is_hyp, nu_hyp, nu_ell)

    p = jnp.maximum(a_sel * (1.0 - e_sel ** 2), 1e-12)
    cos_nu = jnp.cos(nu)
    sin_nu = jnp.sin(nu)
    r_mag = p / (1.0 + e_sel * cos_nu)
    v_scale = jnp.sqrt(mu / p)

    r_pf = jnp.array([r_mag * cos_nu, r_mag * sin_nu, 0.0])
    v_pf = jnp.array([-v_scale * sin_nu, v_scale * (e_sel + cos_nu), 0.0])

    cos_O = jnp.cos(Omega)
    sin_O = jnp.sin(Omega)
    cos_i = jnp.cos(inc)
    sin_i = jnp.sin(inc)
    cos_w = jnp.cos(omega)
    sin_w = jnp.sin(omega)

    rot = jnp.array([
        [cos_O * cos_w - sin_O * sin_w * cos_i, -cos_O * sin_w - sin_O * cos_w * cos_i, sin_O * sin_i],
        [sin_O * cos_w + cos_O * sin_w * cos_i, -sin_O * sin_w + cos_O * cos_w * cos_i, -cos_O * sin_i],
        [sin_w * sin_i, cos_w * sin_i, cos_i],
    ])

    return rot @ r_pf, rot @ v_pf


# Inner vmap over times, outer vmap over bodies -> arrays of shape (n_bodies, n_times, 3)
_keplerian_states = jax.jit(jax.vmap(jax.vmap(keplerian_state, in_axes=(None, None, 0)), in_axes=(0, 0, None)))


def keplerian_states(elements: jnp.ndarray, mu: jnp.ndarray, times: jnp.ndarray) -> tuple[jnp.ndarray, jnp.ndarray]:
    """
    Evaluate many bodies at many times at once.

    Parameters
    ----------
    elements : jnp.ndarray
        Array of shape (n_bodies, 7), one row per body
        (a, e, i, Omega, omega, M0, epoch).
    mu : jnp.ndarray
        Gravitational parameter of each body's central body, shape (n_bodies,).
    times : jnp.ndarray
        Julian dates, shape (n_times,).

    Returns
    -------
    r, v : jnp.ndarray
        Positions and velocities of shape (n_bodies, n_times, 3), relative to
        each body's central body.
    """
    elements = jnp.atleast_2d(jnp.asarray(elements, dtype=jnp.float64))
    mu = jnp.atleast_1d(jnp.asarray(mu, dtype=jnp.float64))
    times = jnp.atleast_1d(jnp.asarray(times, dtype=jnp.float64))
    return _keplerian_states(elements, mu, times)
