"""
Numerical propagation functions for Poincare shooting.

This module provides thin wrappers around scipy.integrate.solve_ivp for the
three kinds of integrations needed by the shooting algorithms:
- Fixed-time propagation of a state (optionally recording a time grid)
- Propagation until a trajectory strikes one of the Poincare sections
- Fixed-time propagation of the tangent (variational) equations

Section crossings are detected with solve_ivp's event mechanism. The indicator
of every hyperplane becomes one terminal event; the first one to fire stops the
integration. Failures of the integrator, and trajectories that never reach a
section, are reported with IntegrationError.
"""

import logging

import numpy as np
from scipy.integrate import solve_ivp
from scipy.optimize import OptimizeResult

from poincare_shooting.algorithms.dynamics.equations import tangent_equations
from poincare_shooting.utils.exceptions import IntegrationError

logger = logging.getLogger(__name__)


def departure_sides(indicator, n_sections, field, x0, params, eps=1e-8):
    """
    Side of every hyperplane that a trajectory leaving ``x0`` moves into.

    The indicators are evaluated a short step ``eps`` (relative to the state
    size) along the vector field. Away from a hyperplane this is the sign of
    its indicator at ``x0``; on a hyperplane it is the side the flow leaves to.

    Returns
    -------
    ndarray
        Array of shape (n_sections,) holding +1, -1, or 0 where the step does
        not leave the hyperplane.
    """
    x0 = np.asarray(x0, dtype=np.float64)
    f = np.asarray(field(x0, params), dtype=np.float64)
    speed = np.linalg.norm(f)
    ahead = x0 if speed == 0.0 else x0 + eps * (1.0 + np.linalg.norm(x0)) / speed * f
    return np.array([np.sign(indicator(ahead, i)) for i in range(n_sections)])


def section_events(indicator, n_sections, t0=0.0, direction=1, terminal=True,
                   skip_first_step=True, initial_sides=None):
    """
    Build solve_ivp event functions for the zero crossings of section indicators.

    Parameters
    ----------
    indicator : callable
        ``indicator(y, i)`` returns the signed distance of ``y`` to hyperplane ``i``.
    n_sections : int
        Number of hyperplanes M.
    t0 : float, optional
        Initial time of the integration. Default is 0.
    direction : {1, -1, 0}, optional
        Crossing direction to detect. Default is 1 (up-crossings only).
    terminal : bool, optional
        Whether the first event stops the integration. Default is True.
    skip_first_step : bool, optional
        When True, the indicators are masked at the initial time so that a
        trajectory starting on a section does not immediately stop on it.
        Default is True.
    initial_sides : array_like, optional
        Masked value of every indicator, see :func:`departure_sides`. Without
        it the masked value is +1 (-1 for ``direction=-1``), which cannot start
        a crossing in the detected direction. Required when ``direction=0``.

    Returns
    -------
    list of callable
        One event function per hyperplane, carrying the ``terminal`` and
        ``direction`` attributes expected by solve_ivp.

    Raises
    ------
    ValueError
        If ``direction=0`` is masked without ``initial_sides``.
    """
    if initial_sides is None:
        if skip_first_step and direction == 0:
            raise ValueError("Masking crossings in both directions needs the initial sides")
        masked = [-1.0 if direction < 0 else 1.0] * n_sections
    else:
        if len(initial_sides) != n_sections:
            raise ValueError(f"Expected {n_sections} initial sides, got {len(initial_sides)}")
        # A tangential start keeps the sentinel of the detected direction
        masked = [float(s) if s != 0 else (-1.0 if direction < 0 else 1.0) for s in initial_sides]

    def make_event(i):
        def event(t, y):
            if skip_first_step and t <= t0:
                return masked[i]
            return indicator(y, i)
        event.terminal = terminal
        event.direction = direction
        return event

    return [make_event(i) for i in range(n_sections)]


def _check_status(sol, what):
    if sol.status == -1:
        raise IntegrationError(f"Integration failed during {what}: {sol.message}")


def propagate(field, x0, params, tf, t0=0.0, steps=None, events=None, method='DOP853', **solve_kwargs):
    """
    Propagate a state over a fixed time span.

    With ``events`` the integration may stop earlier at a terminal event; it is
    not an error for no event to occur.

    Parameters
    ----------
    field : callable
        Vector field F(x, params).
    x0 : array_like
        Initial state.
    params : Any
        Parameters passed to the field.
    tf : float
        Final time.
    t0 : float, optional
        Initial time. Default is 0.
    steps : int, optional
        If given, the solution is reported on ``steps`` equally spaced times of
        [t0, tf]; otherwise at the integrator's own steps.
    events : list of callable, optional
        Event functions, see :func:`section_events`. Default is None.
    method : str, optional
        solve_ivp method. Default is 'DOP853'.
    **solve_kwargs
        Additional keyword arguments passed to scipy.integrate.solve_ivp
        (rtol, atol, max_step, ...).

    Returns
    -------
    sol : OdeResult
        Solution object from scipy.integrate.solve_ivp with ``t`` and ``y``
        (shape (N, n_times)).

    Raises
    ------
    IntegrationError
        If the integrator fails.
    """
    x0 = np.asarray(x0, dtype=np.float64)

    # Zero-span short-circuit, solve_ivp rejects an empty interval
    if np.isclose(tf, t0, rtol=0.0, atol=1e-15):
        n = steps if steps is not None else 2
        return OptimizeResult(
            t=np.full(n, float(t0)), y=np.repeat(x0[:, None], n, axis=1),
            t_events=None, y_events=None, status=0, success=True,
            message="Zero-length time span."
        )

    def ode_func(t, y):
        return field(y, params)

    t_eval = np.linspace(t0, tf, steps) if steps is not None else None

    sol = solve_ivp(ode_func, (t0, tf), x0, method=method, t_eval=t_eval, events=events, **solve_kwargs)
    _check_status(sol, f"propagation to t={tf}")
    return sol


def propagate_to_event(field, x0, params, events, t_max, t0=0.0, method='DOP853', **solve_kwargs):
    """
    Propagate a state until the first terminal event fires.

    Parameters
    ----------
    field : callable
        Vector field F(x, params).
    x0 : array_like
        Initial state.
    params : Any
        Parameters passed to the field.
    events : list of callable
        Terminal event functions, see :func:`section_events`.
    t_max : float
        Horizon of the search. Reaching it without an event is a failure.
    t0 : float, optional
        Initial time. Default is 0.
    method : str, optional
        solve_ivp method. Default is 'DOP853'.
    **solve_kwargs
        Additional keyword arguments passed to scipy.integrate.solve_ivp.

    Returns
    -------
    sol : OdeResult
        Solution object whose last sample (``sol.t[-1]``, ``sol.y[:, -1]``) is
        the event location.

    Raises
    ------
    IntegrationError
        If the integrator fails or no event occurs before ``t_max``.
    """
    x0 = np.asarray(x0, dtype=np.float64)

    def ode_func(t, y):
        return field(y, params)

    sol = solve_ivp(ode_func, (t0, t0 + t_max), x0, method=method, events=events, **solve_kwargs)
    _check_status(sol, "the search for a section crossing")

    if sol.status != 1:
        raise IntegrationError(
            f"Trajectory from {x0} did not reach a section before t={t0 + t_max}"
        )

    logger.debug(f"Section reached at t={sol.t[-1]:.12g} after {sol.nfev} field evaluations")
    return sol


def propagate_tangent(field, x0, dx0, params, tf, jacobian=None, tangent_field=None,
                      method='DOP853', **solve_kwargs):
    """
    Propagate a state together with a perturbation direction for a fixed time.

    The tangent equations are always integrated over the exact span [0, tf];
    no event is active.

    Parameters
    ----------
    field : callable
        Vector field F(x, params).
    x0 : array_like
        Initial state, length N.
    dx0 : array_like
        Initial perturbation direction, length N.
    params : Any
        Parameters passed to the field.
    tf : float
        Integration time.
    jacobian : callable, optional
        Jacobian matrix J(x, params) of the field. If None, the product
        dF(x) . v is approximated by finite differences.
    tangent_field : callable, optional
        Right-hand side ``tangent_field(z, params)`` of the combined 2N system
        [x, v]. Takes precedence over ``field``/``jacobian`` when given.
    method : str, optional
        solve_ivp method. Default is 'DOP853'.
    **solve_kwargs
        Additional keyword arguments passed to scipy.integrate.solve_ivp.

    Returns
    -------
    x_tf : ndarray
        State at time tf.
    dx_tf : ndarray
        Perturbation direction at time tf.

    Raises
    ------
    IntegrationError
        If the integrator fails.
    """
    x0 = np.asarray(x0, dtype=np.float64)
    dx0 = np.asarray(dx0, dtype=np.float64)
    dim = x0.shape[0]

    if np.isclose(tf, 0.0, rtol=0.0, atol=1e-15):
        return x0.copy(), dx0.copy()

    z0 = np.concatenate((x0, dx0))

    if tangent_field is not None:
        def rhs(t, z):
            return tangent_field(z, params)
    else:
        def rhs(t, z):
            return tangent_equations(t, z, field, jacobian, params, dim)

    sol = solve_ivp(rhs, (0.0, tf), z0, method=method, **solve_kwargs)
    _check_status(sol, f"tangent propagation to t={tf}")

    z_tf = sol.y[:, -1]
    return z_tf[:dim].copy(), z_tf[dim:].copy()
