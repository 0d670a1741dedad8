"""
Building a Poincare shooting problem at a bifurcation point.

Continuation codes detect a Hopf or period-doubling point and need a fresh
shooting problem on a section through a few points of the emerging orbit. The
problem they hold until then is deferred: it records the number of sections and
the integrator configuration but has no vector field or section yet.
"""

import logging

import numpy as np

from poincare_shooting import config
from poincare_shooting.algorithms.dynamics.flow import DeferredFlow
from poincare_shooting.algorithms.sections.hyperplane import HyperplaneSection
from poincare_shooting.algorithms.shooting.poincare import PoincareShootingProblem
from poincare_shooting.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def update_for_branch_switching(problem, field, jacobian, bifurcation_point, centers, period,
                                delta=config.FD_DELTA):
    """
    Build an evaluable shooting problem through ``centers``.

    Parameters
    ----------
    problem : PoincareShootingProblem
        Problem whose flow is a :class:`DeferredFlow`.
    field : callable
        Vector field ``F(x, params)``.
    jacobian : callable or None
        Jacobian matrix of ``field``, used by the tangent equations.
    bifurcation_point : BifurcationPoint
        Point of the branch; its ``params`` define the new flow's section.
    centers : sequence of array_like
        One point per hyperplane, on the orbit to be computed.
    period : float
        Estimate of the period of the orbit.
    delta : float, optional
        Finite-difference step of the new problem. Default is ``config.FD_DELTA``.

    Returns
    -------
    new_problem : PoincareShootingProblem
        Problem on the hyperplanes through ``centers`` orthogonal to the field.
    guess : ndarray
        Reduced coordinates of ``centers`` on their hyperplanes.

    Raises
    ------
    ConfigurationError
        If the flow of ``problem`` is already constructed.
    """
    deferred = problem.flow
    if not isinstance(deferred, DeferredFlow):
        raise ConfigurationError(
            f"Branch switching needs a deferred flow, got {type(deferred).__name__}"
        )

    params = bifurcation_point.params
    centers = [np.array(c, dtype=np.float64).ravel() for c in centers]
    normals = []
    for c in centers:
        f = np.asarray(field(c, params), dtype=np.float64)
        normals.append(f / np.linalg.norm(f))

    if period > deferred.flow_config.t_max:
        logger.warning(
            f"Period estimate {period} exceeds the flow horizon t_max={deferred.flow_config.t_max}"
        )

    section = HyperplaneSection(normals, centers)
    flow = deferred.build(field, section, jacobian)
    new_problem = PoincareShootingProblem(flow, section, delta=delta, parallel=problem.is_parallel)

    guess = np.concatenate([section.restrict(c, i) for i, c in enumerate(section.centers)])

    logger.info(
        f"Branch switching on {len(centers)} section(s), period estimate {period:.6g}, dual flow: {deferred.is_dual}"
    )
    return new_problem, guess
