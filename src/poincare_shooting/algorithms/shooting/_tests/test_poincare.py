import logging

import numpy as np
import pytest

from poincare_shooting.algorithms.dynamics.equations import (
    harmonic_oscillator,
    harmonic_oscillator_jacobian,
    stuart_landau,
    stuart_landau_jacobian,
)
from poincare_shooting.algorithms.dynamics.flow import FlowConfig
from poincare_shooting.algorithms.sections.hyperplane import HyperplaneSection
from poincare_shooting.algorithms.shooting.poincare import PoincareShootingProblem
from poincare_shooting.utils.exceptions import ConfigurationError, IntegrationError

# Stuart-Landau with mu = omega = lam = 1: unit circle, period 2*pi
SL_PARAMS = (1.0, 1.0, 1.0)


def _oscillator_problem(**kwargs):
    return PoincareShootingProblem.from_hyperplanes(
        harmonic_oscillator, 1.0, [[0.0, -1.0]], [[1.0, 0.0]],
        jacobian=harmonic_oscillator_jacobian, **kwargs
    )


def _landau_problem(M=2, **kwargs):
    angles = 2 * np.pi * np.arange(M) / M
    centers = [np.array([np.cos(a), np.sin(a), 0.0]) for a in angles]
    section = HyperplaneSection.from_field(stuart_landau, centers, SL_PARAMS)
    return PoincareShootingProblem.from_section(
        stuart_landau, SL_PARAMS, section, jacobian=stuart_landau_jacobian, **kwargs
    )


def test_residual_vanishes_on_oscillator_orbits():
    problem = _oscillator_problem()

    assert problem.M == 1
    # Every circle is periodic: any point of the hyperplane is a zero
    for x_bar in ([0.0], [0.5], [-0.3]):
        np.testing.assert_allclose(problem(np.array(x_bar), 1.0), [0.0], atol=1e-9)


def test_residual_vanishes_on_limit_cycle():
    for M in (1, 2, 3):
        problem = _landau_problem(M)
        x_bar = np.zeros(M * 2)
        np.testing.assert_allclose(problem.evaluate(x_bar, SL_PARAMS), np.zeros(M * 2), atol=1e-9)


def test_residual_off_the_orbit():
    problem = _landau_problem(1)
    # Local coordinates (u - 1, w); radius and w both decay over one period
    residual = problem(np.array([0.1, 0.2]), SL_PARAMS)

    assert residual[0] > 0.09
    assert residual[1] == pytest.approx(0.2 * (1 - np.exp(-2 * np.pi)), abs=1e-8)


def test_analytical_jacobian_matches_floquet_multipliers():
    problem = _landau_problem(1, delta=0.0)
    x_bar = np.zeros(2)

    radial = problem.jacobian_apply(x_bar, SL_PARAMS, np.array([1.0, 0.0]))
    transverse = problem.jacobian_apply(x_bar, SL_PARAMS, np.array([0.0, 1.0]))

    np.testing.assert_allclose(radial, [1 - np.exp(-4 * np.pi), 0.0], atol=1e-8)
    np.testing.assert_allclose(transverse, [0.0, 1 - np.exp(-2 * np.pi)], atol=1e-8)


@pytest.mark.parametrize("M", [1, 2])
def test_finite_difference_jacobian_matches_analytical(M):
    analytical = _landau_problem(M, delta=0.0)
    numerical = _landau_problem(M, delta=1e-6)
    rng = np.random.default_rng(3)
    x_bar = 0.05 * rng.normal(size=2 * M)
    dx_bar = rng.normal(size=2 * M)

    jv_analytical = analytical.jacobian_apply(x_bar, SL_PARAMS, dx_bar)
    jv_numerical = numerical(x_bar, SL_PARAMS, dx_bar)

    np.testing.assert_allclose(jv_numerical, jv_analytical, atol=1e-4)


def test_analytical_jacobian_with_finite_difference_tangents():
    with_jacobian = _landau_problem(2, delta=0.0)
    section = with_jacobian.section
    without_jacobian = PoincareShootingProblem.from_section(stuart_landau, SL_PARAMS, section, delta=0.0)
    dx_bar = np.array([1.0, -0.5, 0.25, 2.0])

    np.testing.assert_allclose(
        without_jacobian.jacobian_apply(np.zeros(4), SL_PARAMS, dx_bar),
        with_jacobian.jacobian_apply(np.zeros(4), SL_PARAMS, dx_bar),
        atol=1e-6
    )


def test_parallel_matches_sequential():
    sequential = _landau_problem(3)
    parallel = _landau_problem(3, parallel=True)
    x_bar = np.array([0.05, -0.1, 0.02, 0.0, -0.03, 0.1])

    assert parallel.is_parallel
    np.testing.assert_allclose(parallel(x_bar, SL_PARAMS), sequential(x_bar, SL_PARAMS), atol=1e-12)
    dx_bar = np.ones(6)
    np.testing.assert_allclose(
        parallel(x_bar, SL_PARAMS, dx_bar), sequential(x_bar, SL_PARAMS, dx_bar), atol=1e-6
    )


def test_single_section_is_sequential():
    problem = _oscillator_problem(parallel=True)
    assert not problem.is_parallel


def test_newton_converges_to_limit_cycle():
    problem = _landau_problem(2, delta=0.0)

    x_bar = np.array([0.2, 0.1, -0.15, 0.05])
    for _ in range(10):
        residual = problem(x_bar, SL_PARAMS)
        if np.linalg.norm(residual) < 1e-10:
            break
        # Columns of the Jacobian from directional derivatives
        J = np.column_stack([problem(x_bar, SL_PARAMS, e) for e in np.eye(4)])
        x_bar = x_bar - np.linalg.solve(J, residual)

    assert np.linalg.norm(problem(x_bar, SL_PARAMS)) < 1e-10
    np.testing.assert_allclose(x_bar, np.zeros(4), atol=1e-8)
    assert problem.period(x_bar, SL_PARAMS) == pytest.approx(2 * np.pi, abs=1e-8)


def test_diff_poincare_map_warns_on_non_tangent_direction(caplog):
    problem = _oscillator_problem(delta=0.0)
    x = np.array([1.0, 0.0])

    with caplog.at_level(logging.WARNING, logger="poincare_shooting.algorithms.shooting.poincare"):
        problem.diff_poincare_map(x, 1.0, np.array([1.0, 0.0]), 0)
    assert not caplog.records

    with caplog.at_level(logging.WARNING, logger="poincare_shooting.algorithms.shooting.poincare"):
        out = problem.diff_poincare_map(x, 1.0, np.array([1.0, 1.0]), 0)
    assert any("not tangent" in r.getMessage() for r in caplog.records)
    # The field component is projected out
    np.testing.assert_allclose(out, [1.0, 0.0], atol=1e-9)


def test_full_coordinates_problem():
    problem = PoincareShootingProblem.from_hyperplanes(
        harmonic_oscillator, 1.0, [[0.0, -1.0]], [[1.0, 0.0]], reduce=False
    )
    np.testing.assert_allclose(problem(np.array([1.0, 0.0]), 1.0), [0.0, 0.0], atol=1e-9)


def test_from_indicator():
    problem = PoincareShootingProblem.from_indicator(stuart_landau, SL_PARAMS, lambda x: x[1], 3)

    np.testing.assert_allclose(problem.section.normals[0], [0.0, 1.0, 0.0])
    np.testing.assert_allclose(problem(np.array([1.0, 0.0]), SL_PARAMS), [0.0, 0.0], atol=1e-9)

    # Local coordinates are centred on the origin, the cycle has radius 1
    residual = problem(np.array([0.5, 0.0]), SL_PARAMS)
    assert residual[0] < -0.4
    assert residual[1] == 0.0


def test_configuration_errors():
    with pytest.raises(ConfigurationError):
        _landau_problem(2, delta=0.0, parallel=True).jacobian_apply(np.zeros(4), SL_PARAMS, np.ones(4))

    section = HyperplaneSection([[0.0, -1.0]], [[1.0, 0.0]])
    flow = _oscillator_problem().flow
    with pytest.raises(ConfigurationError):
        PoincareShootingProblem(flow, section, M=2)

    deferred = PoincareShootingProblem.deferred(2, SL_PARAMS)
    assert deferred.is_deferred
    with pytest.raises(ConfigurationError):
        deferred.evaluate(np.zeros(4), SL_PARAMS)
    with pytest.raises(ConfigurationError):
        deferred.jacobian_apply(np.zeros(4), SL_PARAMS, np.ones(4))
    with pytest.raises(ConfigurationError):
        deferred.period(np.zeros(4), SL_PARAMS)


def test_argument_errors():
    section = HyperplaneSection([[0.0, -1.0]], [[1.0, 0.0]])
    flow = _oscillator_problem().flow
    with pytest.raises(ValueError):
        PoincareShootingProblem(flow, section, delta=-1.0)
    with pytest.raises(ValueError):
        PoincareShootingProblem.deferred(0, 1.0)
    with pytest.raises(ValueError):
        _oscillator_problem()(np.zeros(2), 1.0)


def test_integration_failure_propagates():
    problem = _oscillator_problem(flow_config=FlowConfig(t_max=1.0))

    with pytest.raises(IntegrationError):
        problem(np.zeros(1), 1.0)


def test_evaluation_does_not_modify_input():
    problem = _landau_problem(2)
    x_bar = np.array([0.1, 0.0, -0.1, 0.05])
    before = x_bar.copy()

    residual = problem(x_bar, SL_PARAMS)
    assert residual is not x_bar
    np.testing.assert_array_equal(x_bar, before)


if __name__ == "__main__":
    test_residual_vanishes_on_limit_cycle()
    test_analytical_jacobian_matches_floquet_multipliers()
