"""
Quantities of a periodic orbit given by its Poincare shooting coordinates.

Each function takes a :class:`PoincareShootingProblem` and a reduced guess
``x_bar``. They are also available as methods of the problem.
"""

import logging

import numpy as np

from poincare_shooting.models.trajectory import Trajectory

logger = logging.getLogger(__name__)


def period(problem, x_bar, par=None) -> float:
    """
    Period of the orbit: the sum of the M section-to-section flight times.

    Parameters
    ----------
    problem : PoincareShootingProblem
        Shooting problem with a constructed flow.
    x_bar : array_like
        Reduced guess.
    par : Any, optional
        Parameters, the flow's defaults when None.

    Returns
    -------
    float
        Sum of the times taken by each lifted point to reach the next section.
    """
    flow = problem.constructed_flow
    xc = problem.lift(x_bar)

    if problem.is_parallel:
        crossings = flow.evolve_time_many(xc, par)
    else:
        crossings = [flow.evolve_time(x, par) for x in xc]

    T = float(sum(t for t, _ in crossings))
    logger.debug(f"Orbit period {T:.12g} over {problem.M} section(s)")
    return T


def trajectory(problem, x_bar, par=None, steps=None) -> Trajectory:
    """
    Full trajectory of one revolution of the orbit.

    Sequentially, the flow is integrated from the first lifted point for
    exactly one period, with events disabled. In parallel mode the M
    section-to-section arcs are computed concurrently and joined end to end.

    Parameters
    ----------
    steps : int, optional
        Number of equally spaced samples. The integrator's own steps are
        returned otherwise. Sequential mode only.

    Raises
    ------
    ValueError
        If ``steps`` is given to a parallel problem.
    """
    flow = problem.constructed_flow

    if problem.is_parallel:
        if steps is not None:
            raise ValueError("Sampling on a time grid is only available for sequential problems")
        xc = problem.lift(x_bar)
        arcs = flow.evolve_full_many(xc, par)
        return Trajectory.concatenate(arcs)

    T = period(problem, x_bar, par)
    x0 = problem.lift(x_bar)[0]
    return flow.evolve_full(x0, par, t=T, events=False, steps=steps)


def extremum(problem, x_bar, par=None, ratio=1, op=(max, np.max)):
    """
    Extremum of the leading state components along the orbit.

    Parameters
    ----------
    ratio : int, optional
        Only the first ``Nr // ratio`` components are inspected, Nr being the
        length of one block of ``x_bar``. Default is 1.
    op : tuple of callable, optional
        ``op[1]`` reduces the samples of one arc to a value, ``op[0]``
        combines the values of the M arcs. Default is ``(max, np.max)``.

    Returns
    -------
    float
        The combined extremum, e.g. the amplitude of the orbit.
    """
    flow = problem.constructed_flow
    xc = problem.lift(x_bar)
    n = problem.section.reduced_dim // ratio
    if n < 1:
        raise ValueError(f"ratio={ratio} leaves no component to inspect")

    if problem.is_parallel:
        arcs = flow.evolve_full_many(xc, par)
    else:
        arcs = [flow.evolve_full(x, par) for x in xc]

    values = [op[1](arc.states[:, :n]) for arc in arcs]
    result = values[0]
    for v in values[1:]:
        result = op[0](result, v)
    return result


def update_section(problem, centers_bar, par=None):
    """
    Move the hyperplanes to new points of the orbit.

    The new center of hyperplane i is ``embed(centers_bar_i, i)`` and its new
    normal is the unit vector field there. Meant to be called between
    continuation steps to keep the section transversal to the orbit.
    """
    flow = problem.constructed_flow
    section = problem.section
    centers = problem.lift(centers_bar)

    normals = []
    for c in centers:
        f = flow.field(c, par)
        normals.append(f / np.linalg.norm(f))

    section.update(normals, centers)
    logger.debug(f"Re-centred {problem.M} hyperplane(s) on the orbit")
    return section
