"""
Vector fields, propagation and flows used by Poincare shooting.

This package provides:
- Reference vector fields and tangent (variational) equations
- solve_ivp based propagation with section-crossing events
- The Flow abstraction consumed by the shooting problems
"""

from .equations import (
    harmonic_oscillator,
    harmonic_oscillator_jacobian,
    stuart_landau,
    stuart_landau_jacobian,
    finite_difference_jvp,
    tangent_equations
)
from .propagator import departure_sides, propagate, propagate_to_event, propagate_tangent, section_events
from .flow import Flow, DeferredFlow, FlowConfig, EventConfig, FlowHandle

__all__ = [
    # Equations
    'harmonic_oscillator',
    'harmonic_oscillator_jacobian',
    'stuart_landau',
    'stuart_landau_jacobian',
    'finite_difference_jvp',
    'tangent_equations',

    # Propagators
    'departure_sides',
    'propagate',
    'propagate_to_event',
    'propagate_tangent',
    'section_events',

    # Flows
    'Flow',
    'DeferredFlow',
    'FlowConfig',
    'EventConfig',
    'FlowHandle'
]
