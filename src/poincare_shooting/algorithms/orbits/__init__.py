"""
Periodic orbit quantities computed from Poincare shooting coordinates.

This package provides:

- The period of the orbit and its full trajectory
- Extrema of state components along the orbit (amplitudes)
- Re-centering of the Poincare section on the orbit
"""

from .utils import period, trajectory, extremum, update_section

__all__ = [
    'period',
    'trajectory',
    'extremum',
    'update_section'
]
