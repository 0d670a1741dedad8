"""
Default numerical settings for Poincare shooting.

These module-level values are the defaults picked up by
:class:`~poincare_shooting.algorithms.dynamics.flow.FlowConfig` and by the
shooting problem constructors. Override them per problem by passing an explicit
``FlowConfig`` or keyword arguments rather than editing this module.
"""

import numpy as np

# Integrator
#-----------

#: str: Default scipy.integrate.solve_ivp method
METHOD = "DOP853"

#: float: Relative tolerance of the integrator
RTOL = 1e-12

#: float: Absolute tolerance of the integrator
ATOL = 1e-12

#: float: Maximum step allowed to the integrator
MAX_STEP = np.inf

#: float: Horizon of an "until event" integration. A trajectory that has not
#: reached a section by this time is reported as an integration failure.
T_MAX = 1e3

#: int or None: Worker threads for batched (parallel) flow calls, None lets
#: ThreadPoolExecutor decide
N_WORKERS = None

# Shooting
#---------

#: float: Finite-difference step of the matrix-free Jacobian (0 selects the
#: analytical Jacobian)
FD_DELTA = 1e-8

#: float: Tolerance on |<normal, dx>| before a tangent vector is reported as
#: not belonging to the hyperplane
ORTHOGONALITY_TOL = 1e-12
