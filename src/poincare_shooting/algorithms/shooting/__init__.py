"""
Poincare shooting problems and branch switching.
"""

from .poincare import PoincareShootingProblem
from .branching import update_for_branch_switching

__all__ = [
    'PoincareShootingProblem',
    'update_for_branch_switching'
]
