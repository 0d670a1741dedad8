"""
Poincare (multiple) shooting functional and its Jacobian.

A periodic orbit crossing the M hyperplanes of a section is represented by its
M intersection points, each written in the local coordinates of its
hyperplane and stacked in a flat vector x_bar of length M * Nr. The shooting
functional lifts every block to state space, follows the flow from each
hyperplane to the next crossing and returns the mismatch

    G(x_bar)_i = d_restrict(embed(x_bar_i, i) - Pi(embed(x_bar_{i-1}, i-1)), i)

where Pi is the return map of the flow onto the section (block -1 is block
M-1). Periodic orbits are zeros of G, so G and its Jacobian-vector product are
meant to be handed to a Newton-Krylov or continuation solver.
"""

import logging

import numpy as np

from poincare_shooting import config
from poincare_shooting.algorithms.dynamics.flow import DeferredFlow, Flow, FlowConfig
from poincare_shooting.algorithms.orbits import utils as orbit_utils
from poincare_shooting.algorithms.sections.hyperplane import HyperplaneSection
from poincare_shooting.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class PoincareShootingProblem:
    """
    Poincare shooting problem on a hyperplane section.

    Parameters
    ----------
    flow : Flow or DeferredFlow
        Flow of the vector field, with events on ``section``. A
        :class:`DeferredFlow` only describes the integrator; such a problem
        cannot be evaluated and is meant for branch switching.
    section : HyperplaneSection or None
        The M hyperplanes. May be None for a deferred problem.
    M : int, optional
        Number of sections. Defaults to ``section.M``.
    delta : float, optional
        Finite-difference step of the Jacobian. ``0`` selects the analytical
        Jacobian. Default is ``config.FD_DELTA``.
    parallel : bool, optional
        Advance the M points concurrently. Ignored (forced to False) when M == 1.

    Raises
    ------
    ConfigurationError
        If ``M`` differs from the number of hyperplanes of ``section``.
    ValueError
        If ``M < 1`` or ``delta < 0``.
    """

    def __init__(self, flow, section, M=None, delta=config.FD_DELTA, parallel=False):
        if M is None:
            if section is None:
                raise ValueError("M is required when no section is given")
            M = section.M
        if M < 1:
            raise ValueError(f"The number of sections must be at least 1, got {M}")
        if section is not None and section.M != M:
            raise ConfigurationError(
                f"Problem declares M={M} sections but the section has {section.M} hyperplanes"
            )
        if delta < 0:
            raise ValueError(f"The finite-difference step must be non-negative, got {delta}")

        self.flow = flow
        self.section = section
        self.delta = delta
        self._M = M
        self._parallel = bool(parallel) and M > 1
        if parallel and M == 1:
            logger.debug("Single section, running sequentially")

        logger.info(f"Created {self!r}")

    def __repr__(self):
        flow = "deferred" if self.is_deferred else "constructed"
        return (f"{self.__class__.__name__}(M={self.M}, delta={self.delta}, "
                f"parallel={self.is_parallel}, flow={flow})")

    @classmethod
    def from_section(cls, field, params, section, method=config.METHOD, jacobian=None,
                     tangent_field=None, tangent_method=None, flow_config=None,
                     event_config=None, delta=config.FD_DELTA, parallel=False):
        """
        Problem for ``field`` with events on an existing section.

        Parameters
        ----------
        field : callable
            Vector field ``F(x, params)``.
        params : Any
            Default parameters of the flow.
        section : HyperplaneSection
            The hyperplanes.
        method, jacobian, tangent_field, tangent_method, flow_config, event_config
            Forwarded to :class:`Flow`.
        delta, parallel
            See :class:`PoincareShootingProblem`.
        """
        flow = Flow(field, params=params, section=section, method=method, jacobian=jacobian,
                    tangent_field=tangent_field, tangent_method=tangent_method,
                    flow_config=flow_config, event_config=event_config)
        return cls(flow, section, delta=delta, parallel=parallel)

    @classmethod
    def from_hyperplanes(cls, field, params, normals, centers, reduce=True, **kwargs):
        """Problem on the hyperplanes given by ``normals`` and ``centers``."""
        section = HyperplaneSection(normals, centers, reduce=reduce)
        return cls.from_section(field, params, section, **kwargs)

    @classmethod
    def from_indicator(cls, field, params, indicator, dim, reduce=True, **kwargs):
        """Problem on the hyperplanes described by an affine ``indicator``."""
        section = HyperplaneSection.from_indicator(indicator, dim, reduce=reduce)
        return cls.from_section(field, params, section, **kwargs)

    @classmethod
    def deferred(cls, M, params, method=config.METHOD, tangent_field=None,
                 tangent_method=None, flow_config=None, parallel=False):
        """
        Problem whose flow is not constructed yet.

        It holds the number of sections and the integrator configuration that
        :func:`update_for_branch_switching` reuses to build an evaluable problem.
        """
        flow = DeferredFlow(
            params, method=method,
            flow_config=flow_config if flow_config is not None else FlowConfig(),
            tangent_field=tangent_field, tangent_method=tangent_method
        )
        return cls(flow, None, M=M, parallel=parallel)

    @property
    def M(self) -> int:
        return self._M

    @property
    def is_parallel(self) -> bool:
        return self._parallel

    @property
    def is_deferred(self) -> bool:
        return isinstance(self.flow, DeferredFlow)

    def _check_constructed(self):
        if self.is_deferred or self.section is None:
            raise ConfigurationError(
                "The flow of this problem is deferred, build it with update_for_branch_switching first"
            )

    @property
    def constructed_flow(self) -> Flow:
        """The constructed flow; a deferred problem cannot be evaluated."""
        self._check_constructed()
        return self.flow

    # Coordinates

    def _check_block_vector(self, v, what):
        v = np.array(v, dtype=np.float64).ravel()
        expected = self.M * self.section.reduced_dim
        if v.shape[0] != expected:
            raise ValueError(f"{what} must have length M * Nr = {expected}, got {v.shape[0]}")
        return v

    def lift(self, x_bar) -> np.ndarray:
        """Lifted states, row i being ``embed(x_bar_i, i)``."""
        self._check_constructed()
        section = self.section
        x_bar = self._check_block_vector(x_bar, "Reduced guess")
        rows = x_bar.reshape(self.M, -1)
        xc = np.empty((self.M, section.dim), dtype=np.float64)
        for i in range(self.M):
            section.embed(rows[i], i, out=xc[i])
        return xc

    def _d_lift(self, dx_bar):
        section = self.section
        dx_bar = self._check_block_vector(dx_bar, "Reduced direction")
        rows = dx_bar.reshape(self.M, -1)
        dxc = np.empty((self.M, section.dim), dtype=np.float64)
        for i in range(self.M):
            section.d_embed(rows[i], i, out=dxc[i])
        return dxc

    def _restrict_rows(self, rows):
        section = self.section
        out = np.empty((self.M, section.reduced_dim), dtype=np.float64)
        for i in range(self.M):
            section.d_restrict(rows[i], i, out=out[i])
        return out.ravel()

    # Functional

    def evaluate(self, x_bar, par=None) -> np.ndarray:
        """
        Shooting residual at ``x_bar``.

        Parameters
        ----------
        x_bar : array_like
            Reduced guess, M blocks of local coordinates.
        par : Any, optional
            Parameters, the flow's defaults when None.

        Returns
        -------
        ndarray
            Reduced residual, same length as ``x_bar``.

        Raises
        ------
        ConfigurationError
            If the flow is deferred.
        IntegrationError
            If a trajectory does not reach a section.
        """
        flow = self.constructed_flow
        xc = self.lift(x_bar)
        M = self.M
        logger.debug(f"Evaluating shooting functional, M={M}, parallel={self.is_parallel}")

        residual = np.empty_like(xc)
        if self.is_parallel:
            reached = flow.evolve_many(xc, par)
            for i in range(M):
                residual[i] = xc[i] - reached[i - 1]
        else:
            for i in range(M):
                residual[i] = xc[i] - flow.evolve(xc[i - 1], par)

        return self._restrict_rows(residual)

    def __call__(self, x_bar, par=None, dx_bar=None):
        """Residual, or Jacobian-vector product when ``dx_bar`` is given."""
        if dx_bar is None:
            return self.evaluate(x_bar, par)
        return self.jacobian_apply(x_bar, par, dx_bar)

    def diff_poincare_map(self, x, par, dx, i) -> np.ndarray:
        """
        Differential of the return map at ``x`` (on hyperplane ``i``) applied to ``dx``.

        The tangent solution y over the return time is projected along the
        field z at the landing point onto the arrival hyperplane:
        ``y - <n, y> / <n, z> z``, n being the normal of hyperplane (i+1) mod M.

        ``dx`` should be tangent to hyperplane ``i``; a warning is logged when it
        is not.
        """
        flow = self.constructed_flow
        section = self.section
        x = np.asarray(x, dtype=np.float64)
        dx = np.asarray(dx, dtype=np.float64)

        along = abs(np.dot(section.normals[i], dx))
        if along > config.ORTHOGONALITY_TOL:
            logger.warning(
                f"Direction is not tangent to hyperplane {i}: |<n, dx>| = {along:.3e}, |dx|^2 = {np.dot(dx, dx):.3e}"
            )

        t_sigma, x_sigma = flow.evolve_time(x, par)
        z = flow.field(x_sigma, par)
        _, y = flow.evolve_tangent(x, par, dx, t_sigma)

        n = section.normals[(i + 1) % self.M]
        return y - (np.dot(n, y) / np.dot(n, z)) * z

    def jacobian_apply(self, x_bar, par, dx_bar) -> np.ndarray:
        """
        Jacobian of the shooting functional at ``x_bar`` applied to ``dx_bar``.

        Forward differences with step ``delta`` when ``delta > 0``, otherwise
        the variational formula, which requires sequential mode.

        Raises
        ------
        ConfigurationError
            Analytical Jacobian requested in parallel mode, or deferred flow.
        """
        self._check_constructed()
        if self.delta > 0:
            x_bar = self._check_block_vector(x_bar, "Reduced guess")
            dx_bar = self._check_block_vector(dx_bar, "Reduced direction")
            return (self.evaluate(x_bar + self.delta * dx_bar, par) - self.evaluate(x_bar, par)) / self.delta

        if self.is_parallel:
            raise ConfigurationError("The analytical Jacobian is only available in sequential mode")

        xc = self.lift(x_bar)
        dxc = self._d_lift(dx_bar)
        M = self.M
        logger.debug(f"Applying analytical shooting Jacobian, M={M}")

        rows = np.empty_like(dxc)
        for i in range(M):
            prev = (i - 1) % M
            rows[i] = dxc[i] - self.diff_poincare_map(xc[prev], par, dxc[prev], prev)

        return self._restrict_rows(rows)

    # Orbit utilities

    def period(self, x_bar, par=None) -> float:
        return orbit_utils.period(self, x_bar, par)

    def trajectory(self, x_bar, par=None, steps=None):
        return orbit_utils.trajectory(self, x_bar, par, steps=steps)

    def extremum(self, x_bar, par=None, ratio=1, op=(max, np.max)):
        return orbit_utils.extremum(self, x_bar, par, ratio=ratio, op=op)

    def update_section(self, centers_bar, par=None):
        return orbit_utils.update_section(self, centers_bar, par)
