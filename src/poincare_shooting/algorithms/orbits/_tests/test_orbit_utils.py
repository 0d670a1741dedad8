import numpy as np
import pytest

from poincare_shooting.algorithms.dynamics.equations import harmonic_oscillator, stuart_landau
from poincare_shooting.algorithms.orbits.utils import extremum, period, trajectory, update_section
from poincare_shooting.algorithms.shooting.poincare import PoincareShootingProblem
from poincare_shooting.models.trajectory import Trajectory

SL_PARAMS = (1.0, 1.0, 1.0)


def _oscillator_problem():
    return PoincareShootingProblem.from_hyperplanes(harmonic_oscillator, 1.0, [[0.0, -1.0]], [[1.0, 0.0]])


def _landau_problem(parallel=False):
    return PoincareShootingProblem.from_hyperplanes(
        stuart_landau, SL_PARAMS,
        normals=[[0.0, 1.0, 0.0], [0.0, -1.0, 0.0]],
        centers=[[1.0, 0.0, 0.0], [-1.0, 0.0, 0.0]],
        parallel=parallel
    )


def test_oscillator_period():
    problem = _oscillator_problem()

    assert period(problem, np.array([0.0]), 1.0) == pytest.approx(2 * np.pi, abs=1e-9)
    assert period(problem, np.array([2.0]), 0.5) == pytest.approx(4 * np.pi, abs=1e-9)
    # Problem method delegates to the same computation
    assert problem.period(np.array([0.0]), 1.0) == pytest.approx(2 * np.pi, abs=1e-9)


@pytest.mark.parametrize("parallel", [False, True])
def test_period_is_sum_of_flight_times(parallel):
    problem = _landau_problem(parallel)

    assert problem.is_parallel == parallel
    assert period(problem, np.zeros(4), SL_PARAMS) == pytest.approx(2 * np.pi, abs=1e-9)


def test_sequential_trajectory():
    problem = _landau_problem()

    traj = trajectory(problem, np.zeros(4), SL_PARAMS, steps=50)

    assert isinstance(traj, Trajectory)
    assert len(traj) == 50
    assert traj.duration == pytest.approx(2 * np.pi, abs=1e-9)
    np.testing.assert_allclose(traj.states[0], [1.0, 0.0, 0.0])
    np.testing.assert_allclose(traj.final_state, [1.0, 0.0, 0.0], atol=1e-9)
    np.testing.assert_allclose(np.hypot(traj.states[:, 0], traj.states[:, 1]), 1.0, atol=1e-9)


def test_parallel_trajectory_joins_arcs():
    problem = _landau_problem(parallel=True)

    traj = problem.trajectory(np.zeros(4), SL_PARAMS)

    assert traj.duration == pytest.approx(2 * np.pi, abs=1e-9)
    assert np.all(np.diff(traj.times) >= 0.0)
    np.testing.assert_allclose(traj.final_state, [1.0, 0.0, 0.0], atol=1e-9)
    # The second arc starts on the second hyperplane, half a period in
    half = np.argmin(np.abs(traj.times - np.pi))
    np.testing.assert_allclose(traj.states[half], [-1.0, 0.0, 0.0], atol=1e-6)


def test_parallel_trajectory_rejects_time_grid():
    problem = _landau_problem(parallel=True)

    with pytest.raises(ValueError):
        trajectory(problem, np.zeros(4), SL_PARAMS, steps=50)
    with pytest.raises(ValueError):
        problem.trajectory(np.zeros(4), SL_PARAMS, steps=50)


@pytest.mark.parametrize("parallel", [False, True])
def test_extremum(parallel):
    problem = _landau_problem(parallel)
    x_bar = np.zeros(4)

    assert extremum(problem, x_bar, SL_PARAMS) == pytest.approx(1.0, abs=1e-9)
    assert extremum(problem, x_bar, SL_PARAMS, op=(min, np.min)) == pytest.approx(-1.0, abs=1e-9)
    # ratio=2 keeps only the first component
    assert problem.extremum(x_bar, SL_PARAMS, ratio=2, op=(min, np.min)) == pytest.approx(-1.0, abs=1e-9)

    with pytest.raises(ValueError):
        extremum(problem, x_bar, SL_PARAMS, ratio=3)


def test_extremum_measures_amplitude_off_orbit():
    problem = _landau_problem()
    # Off the cycle the trajectory starts at radius 1.5 and decays
    amplitude = extremum(problem, np.array([0.5, 0.0, 0.0, 0.0]), SL_PARAMS, ratio=2)

    assert amplitude == pytest.approx(1.5)


def test_update_section_recenters_on_orbit():
    problem = _oscillator_problem()
    section = problem.section

    update_section(problem, np.array([0.5]), 1.0)

    np.testing.assert_allclose(section.centers[0], [1.5, 0.0])
    np.testing.assert_allclose(section.normals[0], [0.0, -1.0])
    # Still a zero at the new center
    np.testing.assert_allclose(problem(np.zeros(1), 1.0), [0.0], atol=1e-9)


def test_update_section_follows_field():
    problem = _landau_problem()
    centers_bar = np.zeros(4)
    problem.update_section(centers_bar, SL_PARAMS)
    np.testing.assert_allclose(problem.section.normals[0], [0.0, 1.0, 0.0], atol=1e-12)

    # Inside the cycle the field has a radial component that tilts the normal
    centers_bar[0] = -0.2
    problem.update_section(centers_bar, SL_PARAMS)
    c = problem.section.centers[0]
    f = stuart_landau(c, SL_PARAMS)
    np.testing.assert_allclose(problem.section.normals[0], f / np.linalg.norm(f))
