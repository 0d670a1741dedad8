import numpy as np

from poincare_shooting.algorithms.dynamics.equations import stuart_landau
from poincare_shooting.algorithms.shooting.branching import update_for_branch_switching
from poincare_shooting.algorithms.shooting.poincare import PoincareShootingProblem
from poincare_shooting.models.bifurcation_point import BifurcationPoint

SL_PARAMS = (1.0, 1.0, 1.0)


def test_fields_are_arrays():
    point = BifurcationPoint(x=[0, 0, 0], params=SL_PARAMS, eigenvector=[1.0, 1j, 0.0])

    assert point.x.dtype == np.float64
    np.testing.assert_array_equal(point.x, np.zeros(3))
    assert point.eigenvector.dtype == np.complex128
    assert BifurcationPoint(x=np.zeros(3), params=SL_PARAMS).eigenvector is None


def test_hopf_centers_from_eigenvector():
    # The Hopf eigenvector of Stuart-Landau at the origin spans the (u, v) plane
    point = BifurcationPoint(x=np.zeros(3), params=SL_PARAMS,
                             eigenvector=np.array([1.0, -1j, 0.0]) / np.sqrt(2))
    centers = [point.x + np.sqrt(2) * s * point.eigenvector.real for s in (1.0, -1.0)]
    deferred = PoincareShootingProblem.deferred(2, SL_PARAMS)

    problem, guess = update_for_branch_switching(deferred, stuart_landau, None, point, centers, 2 * np.pi)

    np.testing.assert_allclose(problem.section.centers[0], [1.0, 0.0, 0.0])
    np.testing.assert_allclose(problem.section.centers[1], [-1.0, 0.0, 0.0])
    np.testing.assert_allclose(problem(guess, SL_PARAMS), np.zeros(4), atol=1e-9)


def test_switching_reads_only_parameters():
    deferred = PoincareShootingProblem.deferred(1, SL_PARAMS)
    centers = [np.array([1.0, 0.0, 0.0])]
    at_origin = BifurcationPoint(x=np.zeros(3), params=SL_PARAMS)
    elsewhere = BifurcationPoint(x=np.array([5.0, -2.0, 1.0]), params=SL_PARAMS,
                                 eigenvector=np.array([0.0, 0.0, 1.0]))

    first, _ = update_for_branch_switching(deferred, stuart_landau, None, at_origin, centers, 2 * np.pi)
    second, _ = update_for_branch_switching(deferred, stuart_landau, None, elsewhere, centers, 2 * np.pi)

    np.testing.assert_array_equal(first.section.normals, second.section.normals)
    np.testing.assert_array_equal(first.section.centers, second.section.centers)
