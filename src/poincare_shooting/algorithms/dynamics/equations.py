"""
Vector fields and variational equations used with Poincare shooting.

This module provides:
1. Numba-accelerated reference systems with known periodic orbits (harmonic
   oscillator, Stuart-Landau oscillator with a decaying transverse direction)
   and their Jacobian matrices
2. The tangent (variational) equations of an arbitrary vector field, which
   propagate a perturbation direction alongside the state
3. A finite-difference Jacobian-vector product for fields without an
   analytical Jacobian

All vector fields follow the signature ``F(x, params) -> ndarray``.
"""

import numba
import numpy as np


@numba.njit(fastmath=True, cache=True)
def harmonic_oscillator(x, omega):
    """
    State = [x, y]
    Returns dx/dt = omega*y, dy/dt = -omega*x. Every circle centred at the
    origin is a periodic orbit of period 2*pi/omega, travelled clockwise.
    """
    return np.array([omega * x[1], -omega * x[0]], dtype=np.float64)


@numba.njit(fastmath=True, cache=True)
def harmonic_oscillator_jacobian(x, omega):
    J = np.zeros((2, 2), dtype=np.float64)
    J[0, 1] = omega
    J[1, 0] = -omega
    return J


@numba.njit(fastmath=True, cache=True)
def stuart_landau(x, params):
    """
    Hopf normal form in (u, v) with a linearly decaying third coordinate w.

    params = (mu, omega, lam). For mu > 0 the circle u^2 + v^2 = mu, w = 0 is an
    attracting periodic orbit of period 2*pi/omega, travelled counter-clockwise.
    The origin undergoes a Hopf bifurcation at mu = 0.
    """
    mu, omega, lam = params
    u, v, w = x[0], x[1], x[2]
    r2 = u * u + v * v
    return np.array([
        mu * u - omega * v - u * r2,
        omega * u + mu * v - v * r2,
        -lam * w
    ], dtype=np.float64)


@numba.njit(fastmath=True, cache=True)
def stuart_landau_jacobian(x, params):
    """
    Returns the 3x3 Jacobian matrix of the Stuart-Landau field:

         [ mu - 3u^2 - v^2    -omega - 2uv       0   ]
         [ omega - 2uv         mu - u^2 - 3v^2   0   ]
         [ 0                   0                -lam ]
    """
    mu, omega, lam = params
    u, v = x[0], x[1]
    J = np.zeros((3, 3), dtype=np.float64)
    J[0, 0] = mu - 3.0 * u * u - v * v
    J[0, 1] = -omega - 2.0 * u * v
    J[1, 0] = omega - 2.0 * u * v
    J[1, 1] = mu - u * u - 3.0 * v * v
    J[2, 2] = -lam
    return J


def finite_difference_jvp(field, x, params, v, eps=None):
    """
    Central finite-difference approximation of dF(x) . v.

    Parameters
    ----------
    field : callable
        Vector field F(x, params).
    x : ndarray
        Point at which the derivative is taken.
    params : Any
        Parameters passed to the field.
    v : ndarray
        Direction.
    eps : float, optional
        Step along v. Defaults to cbrt(machine epsilon) scaled by the size of x
        and v.

    Returns
    -------
    ndarray
        Approximation of the Jacobian-vector product.
    """
    v_norm = np.linalg.norm(v)
    if v_norm == 0.0:
        return np.zeros_like(x, dtype=np.float64)
    if eps is None:
        eps = np.cbrt(np.finfo(np.float64).eps) * (1.0 + np.linalg.norm(x)) / v_norm
    f_plus = np.asarray(field(x + eps * v, params), dtype=np.float64)
    f_minus = np.asarray(field(x - eps * v, params), dtype=np.float64)
    return (f_plus - f_minus) / (2.0 * eps)


def tangent_equations(t, z, field, jacobian, params, dim):
    """
    Tangent (variational) equations of an autonomous vector field.

    z is a 2*dim vector:
      - z[:dim] = the state x
      - z[dim:] = the perturbation direction v

    We compute d/dt z = [F(x), dF(x) . v]. When no Jacobian is given, dF(x) . v
    is approximated with finite_difference_jvp.
    """
    x = z[:dim]
    v = z[dim:]

    dz = np.empty_like(z)
    dz[:dim] = field(x, params)
    if jacobian is None:
        dz[dim:] = finite_difference_jvp(field, x, params, v)
    else:
        dz[dim:] = np.asarray(jacobian(x, params)) @ v
    return dz
