"""
Poincare sections made of hyperplanes, with embedding and restriction operators.
"""

from .hyperplane import HyperplaneSection

__all__ = [
    'HyperplaneSection'
]
