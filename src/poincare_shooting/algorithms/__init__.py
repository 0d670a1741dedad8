"""
Algorithms for computing periodic orbits with Poincare shooting.

This package is organized into several submodules:

- dynamics: Vector fields, numerical propagation and flows
- sections: Hyperplane Poincare sections and their local coordinates
- shooting: The shooting functional, its Jacobian and branch switching
- orbits:   Period, trajectory and amplitude of a computed orbit
"""

# Import commonly used functions for easier access
from .dynamics import (
    Flow,
    DeferredFlow,
    FlowConfig,
    EventConfig,
    propagate,
    propagate_to_event,
    propagate_tangent
)
from .sections import HyperplaneSection
from .shooting import PoincareShootingProblem, update_for_branch_switching
from .orbits import period, trajectory, extremum, update_section

__all__ = [
    # Dynamics
    'Flow',
    'DeferredFlow',
    'FlowConfig',
    'EventConfig',
    'propagate',
    'propagate_to_event',
    'propagate_tangent',

    # Sections
    'HyperplaneSection',

    # Shooting
    'PoincareShootingProblem',
    'update_for_branch_switching',

    # Orbits
    'period',
    'trajectory',
    'extremum',
    'update_section'
]
