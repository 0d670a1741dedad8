"""
Flow of a vector field, as consumed by the Poincare shooting algorithms.

A flow maps (initial state, parameters, time) to the resulting state. The
shooting functional needs several views of the same flow:

- the terminal state, optionally with the elapsed time, of an integration that
  runs for a fixed time or until the trajectory strikes a Poincare section
- the full time history of such an integration
- the tangent (variational) solution in a given direction over a fixed time
- the vector field itself
- batched versions of the above over M independent starting states, computed
  concurrently on a thread pool

Two forms of flow handle exist. :class:`Flow` is a constructed flow bound to a
vector field and a section. :class:`DeferredFlow` only stores the parameters
and integrator configuration; it becomes a :class:`Flow` once a vector field and
a section are available, which is how branch switching builds new problems.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Union

import numpy as np
from tqdm import tqdm

from poincare_shooting import config
from poincare_shooting.algorithms.dynamics.propagator import (
    departure_sides,
    propagate,
    propagate_tangent,
    propagate_to_event,
    section_events,
)
from poincare_shooting.models.trajectory import Trajectory
from poincare_shooting.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventConfig:
    """Configuration of the section-crossing events.

    Parameters
    ----------
    direction : int, default 1
        Crossing direction to detect:
        - 0: any sign change
        - +1: only increasing crossings of the section indicator
        - -1: only decreasing crossings
    skip_first_step : bool, default True
        Mask the indicators at the initial time, so that a trajectory starting
        on a section runs until it returns to a section. Every indicator is
        masked with the side of its hyperplane the trajectory departs to.

    Events are always terminal: an "until event" integration ends at the
    first crossing.
    """

    direction: int = 1
    skip_first_step: bool = True

    def __post_init__(self):
        if self.direction not in (-1, 0, 1):
            raise ValueError(f"direction must be -1, 0 or 1, got {self.direction!r}")


@dataclass(frozen=True)
class FlowConfig:
    """Integrator settings shared by every call of a flow.

    Parameters
    ----------
    rtol : float
        Relative tolerance of solve_ivp.
    atol : float
        Absolute tolerance of solve_ivp.
    max_step : float
        Maximum step of solve_ivp.
    t_max : float
        Horizon of "until event" integrations.
    n_workers : int or None
        Threads used by the batched calls.
    """

    rtol: float = config.RTOL
    atol: float = config.ATOL
    max_step: float = config.MAX_STEP
    t_max: float = config.T_MAX
    n_workers: Optional[int] = config.N_WORKERS

    def solve_kwargs(self) -> dict:
        """Keyword arguments forwarded to scipy.integrate.solve_ivp."""
        return {'rtol': self.rtol, 'atol': self.atol, 'max_step': self.max_step}

    def replace(self, **changes) -> "FlowConfig":
        return replace(self, **changes)


class Flow:
    """
    Flow of an autonomous vector field with Poincare section events.

    Parameters
    ----------
    field : callable
        Vector field ``F(x, params) -> ndarray``.
    params : Any, optional
        Default parameters, used when a call passes ``params=None``.
    section : object, optional
        Poincare section providing ``M`` and ``indicator(x, i)``. Required for
        "until event" integrations.
    method : str, optional
        solve_ivp method for the state. Default is ``config.METHOD``.
    jacobian : callable, optional
        Jacobian matrix ``J(x, params)`` of the field, used by the tangent
        equations. Finite differences are used when absent.
    tangent_field : callable, optional
        Right-hand side ``tangent_field(z, params)`` of the combined system
        z = [x, v]. When given, it replaces the built-in tangent equations
        (dual-flow form).
    tangent_method : str, optional
        solve_ivp method for the tangent system. Defaults to ``method``.
    flow_config : FlowConfig, optional
        Integrator settings.
    event_config : EventConfig, optional
        Section event settings.
    """

    def __init__(self, field, params=None, section=None, method=config.METHOD, jacobian=None,
                 tangent_field=None, tangent_method=None, flow_config=None, event_config=None):
        self.F = field
        self.params = params
        self.section = section
        self.method = method
        self.jacobian = jacobian
        self.tangent_field = tangent_field
        self.tangent_method = tangent_method if tangent_method is not None else method
        self.config = flow_config if flow_config is not None else FlowConfig()
        self.event_config = event_config if event_config is not None else EventConfig()

    def __repr__(self):
        return (f"{self.__class__.__name__}(field={getattr(self.F, '__name__', self.F)!r}, "
                f"method='{self.method}', dual={self.is_dual})")

    @property
    def is_dual(self) -> bool:
        """True when the tangent solutions come from a separate tangent system."""
        return self.tangent_field is not None

    def _params(self, params):
        return self.params if params is None else params

    def _events(self, x, params, t0=0.0):
        if self.section is None:
            raise ConfigurationError("This flow has no Poincare section attached, events are unavailable")
        cfg = self.event_config
        sides = None
        if cfg.skip_first_step:
            sides = departure_sides(self.section.indicator, self.section.M, self.F, x, params)
        return section_events(
            self.section.indicator, self.section.M, t0=t0, direction=cfg.direction,
            skip_first_step=cfg.skip_first_step, initial_sides=sides
        )

    def _solve(self, x, params, t, events, steps=None):
        params = self._params(params)
        kwargs = self.config.solve_kwargs()
        if np.isinf(t):
            if not events:
                raise ValueError("An infinite time horizon requires the section events")
            if steps is not None:
                raise ValueError("A time grid cannot be requested for an integration until an event")
            return propagate_to_event(self.F, x, params, self._events(x, params), self.config.t_max,
                                      method=self.method, **kwargs)
        return propagate(self.F, x, params, t, steps=steps,
                         events=self._events(x, params) if events else None,
                         method=self.method, **kwargs)

    @staticmethod
    def _terminal(sol):
        """Time and state where the integration stopped."""
        if sol.status == 1 and sol.t_events is not None:
            for t_ev, y_ev in zip(sol.t_events, sol.y_events):
                if len(t_ev):
                    return float(t_ev[-1]), np.array(y_ev[-1], dtype=np.float64)
        return float(sol.t[-1]), np.array(sol.y[:, -1], dtype=np.float64)

    def field(self, x, params=None) -> np.ndarray:
        """Evaluate the vector field F(x, params)."""
        return np.asarray(self.F(np.asarray(x, dtype=np.float64), self._params(params)), dtype=np.float64)

    def evolve(self, x, params=None, t=np.inf, events=True) -> np.ndarray:
        """
        Terminal state of the flow from ``x``.

        Parameters
        ----------
        x : array_like
            Initial state.
        params : Any, optional
            Parameters, ``self.params`` when None.
        t : float, optional
            Time horizon. ``np.inf`` (default) integrates until the first
            section crossing.
        events : bool, optional
            Whether the section events are active. Default is True.

        Returns
        -------
        ndarray
            State at the end of the integration.
        """
        return self.evolve_time(x, params, t, events)[1]

    def evolve_time(self, x, params=None, t=np.inf, events=True):
        """
        Like :meth:`evolve`, also returning the elapsed time.

        Returns
        -------
        t_end : float
            Time at which the integration stopped (the crossing time for an
            "until event" integration).
        x_end : ndarray
            State at ``t_end``.
        """
        sol = self._solve(x, params, t, events)
        return self._terminal(sol)

    def evolve_full(self, x, params=None, t=np.inf, events=True, steps=None) -> Trajectory:
        """
        Full time history of the flow from ``x``.

        Parameters
        ----------
        steps : int, optional
            For a finite ``t``, report the trajectory on ``steps`` equally
            spaced times; otherwise the integrator's own steps are returned.

        Returns
        -------
        Trajectory
            Times and states, ending at the crossing when an event fired.
        """
        sol = self._solve(x, params, t, events, steps=steps)
        times, states = sol.t, sol.y.T
        if steps is not None and sol.status == 1:
            t_end, x_end = self._terminal(sol)
            times = np.append(times, t_end)
            states = np.vstack((states, x_end))
        return Trajectory(times, states)

    def evolve_tangent(self, x, params, dx, t):
        """
        Tangent solution of the flow over the fixed time ``t``.

        No event is active: the integration always covers [0, t].

        Returns
        -------
        x_t : ndarray
            State at time ``t``.
        dx_t : ndarray
            Derivative of the flow map at ``x`` applied to ``dx``.
        """
        return propagate_tangent(
            self.F, x, dx, self._params(params), t,
            jacobian=self.jacobian, tangent_field=self.tangent_field,
            method=self.tangent_method, **self.config.solve_kwargs()
        )

    # Batched (ensemble) variants

    def _map(self, fn, states, t, desc, show_progress=False):
        # Per-task copies, no buffer is shared between threads
        states = [np.array(s, dtype=np.float64) for s in states]
        horizons = np.broadcast_to(np.asarray(t, dtype=np.float64), (len(states),))
        logger.debug(f"Dispatching {len(states)} trajectories ({desc}) on a thread pool")

        with ThreadPoolExecutor(max_workers=self.config.n_workers) as ex:
            futs = [ex.submit(fn, s, float(h)) for s, h in zip(states, horizons)]
            if show_progress:
                for _ in tqdm(as_completed(futs), total=len(futs), desc=desc):
                    pass
            # Gathered in submission order, not completion order
            return [fut.result() for fut in futs]

    def evolve_many(self, states, params=None, t=np.inf, events=True, show_progress=False):
        """Batched :meth:`evolve`; returns one terminal state per starting state."""
        return self._map(lambda s, h: self.evolve(s, params, h, events),
                         states, t, "evolve", show_progress)

    def evolve_time_many(self, states, params=None, t=np.inf, events=True, show_progress=False):
        """Batched :meth:`evolve_time`; returns a list of (t_end, x_end)."""
        return self._map(lambda s, h: self.evolve_time(s, params, h, events),
                         states, t, "evolve_time", show_progress)

    def evolve_full_many(self, states, params=None, t=np.inf, events=True, show_progress=False):
        """Batched :meth:`evolve_full`; returns a list of Trajectory."""
        return self._map(lambda s, h: self.evolve_full(s, params, h, events),
                         states, t, "evolve_full", show_progress)


@dataclass(frozen=True)
class DeferredFlow:
    """
    Flow configuration waiting for a vector field and a Poincare section.

    Parameters
    ----------
    params : Any
        Parameters of the flow.
    method : str
        solve_ivp method for the state.
    flow_config : FlowConfig
        Integrator settings.
    tangent_field : callable, optional
        Combined [x, v] right-hand side of the dual-flow form.
    tangent_method : str, optional
        solve_ivp method of the tangent system in the dual-flow form.
    """

    params: Any
    method: str = config.METHOD
    flow_config: FlowConfig = FlowConfig()
    tangent_field: Optional[Callable] = None
    tangent_method: Optional[str] = None

    @property
    def is_dual(self) -> bool:
        return self.tangent_field is not None

    def build(self, field, section, jacobian=None, event_config=None) -> Flow:
        """Construct the :class:`Flow` of ``field`` with events on ``section``."""
        return Flow(
            field, params=self.params, section=section, method=self.method,
            jacobian=jacobian, tangent_field=self.tangent_field,
            tangent_method=self.tangent_method, flow_config=self.flow_config,
            event_config=event_config
        )


FlowHandle = Union[Flow, DeferredFlow]
